"""brainbase rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from brainbase.cli.errors import err_no_api_key, err_no_db
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations

_ENV_MAP = {
    "openai": "OPENAI_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "azure": "AZURE_API_KEY",
}


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_var = _ENV_MAP.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-...\n"
        "  Or use a local model:  --model local/all-MiniLM-L6-v2"
    )


def err_input_dir_missing(path: str) -> str:
    """--input-dir does not exist or is not a directory."""
    return (
        f"[red]Error:[/] Input directory not found: '{path}'\n"
        "  Pass an existing directory:  brainbase index --input-dir <dir>"
    )


def err_no_db(db_path: str) -> str:
    """No database file at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        f"  Run:  brainbase index --input-dir <dir> --db {db_path}"
    )


def err_model_mismatch(
    db_model: str, db_dimension: int, requested_model: str, requested_dimension: int
) -> str:
    """Embedding model stored in the DB does not match the requested one."""
    return (
        "[red]Error:[/] Embedding model mismatch.\n"
        f"  Database uses:  {db_model} ({db_dimension} dimensions)\n"
        f"  Requested:      {requested_model} ({requested_dimension} dimensions)\n"
        f"  Rerun with --model {db_model} --dimensions {db_dimension}, "
        "or index into a new --db file."
    )


def err_store_write(detail: str) -> str:
    """A database write failed; the run was aborted."""
    return (
        f"[red]Error:[/] Database write failed: {detail}\n"
        "  Documents committed before the failure are kept.\n"
        "  Check free disk space and file permissions, then rerun the same command."
    )


def err_embedding_batch(detail: str) -> str:
    """The embedding model failed for a batch."""
    return (
        f"[red]Error:[/] Embedding failed: {detail}\n"
        "  Fragments embedded so far are saved.\n"
        "  Rerun the same command to continue where it stopped."
    )


def err_config(detail: str) -> str:
    """Config file contains an invalid or forbidden value."""
    return (
        f"[red]Error:[/] Invalid configuration: {detail}\n"
        "  Fix brainbase.yaml (or ~/.brainbase/config.yaml) and rerun.\n"
        "  Run:  brainbase config  to see the effective settings."
    )


def err_invalid_option(detail: str) -> str:
    """A CLI option value is out of range."""
    return f"[red]Error:[/] {detail}\n  Run:  brainbase index --help"


def err_model_unavailable(model: str, detail: str) -> str:
    """A local embedding model could not be loaded."""
    return (
        f"[red]Error:[/] Cannot load embedding model '{model}': {detail}\n"
        "  Fix the model name, e.g.  --model local/all-MiniLM-L6-v2\n"
        "  If sentence-transformers is missing, run:  pip install 'brainbase\\[local]'"
    )
