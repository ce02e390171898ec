"""
Shared credential loader for headless scripts.

Priority: environment variables (and .env) → .streamlit/secrets.toml → st.secrets fallback.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def load_credentials() -> dict:
    """Load database credentials from env vars, falling back to secrets.toml.

    Returns:
        Dict with TURSO_DATABASE_URL and TURSO_AUTH_TOKEN.

    Raises:
        ValueError: A required credential is missing everywhere.
    """
    load_dotenv(PROJECT_ROOT / ".env")

    # Try secrets.toml as fallback source
    secrets = {}
    secrets_path = PROJECT_ROOT / ".streamlit" / "secrets.toml"
    if secrets_path.exists():
        import tomllib
        with open(secrets_path, "rb") as f:
            secrets = tomllib.load(f)

    # Try Streamlit secrets (when running inside Streamlit app)
    st_secrets = {}
    try:
        import streamlit as st
        if hasattr(st, "secrets") and st.secrets:
            st_secrets = dict(st.secrets)
    except Exception:
        pass

    def _get(key: str) -> str:
        val = os.environ.get(key) or secrets.get(key) or st_secrets.get(key)
        if not val:
            raise ValueError(f"Missing required credential: {key}. "
                             f"Set via environment or .streamlit/secrets.toml")
        return val

    return {
        "TURSO_DATABASE_URL": _get("TURSO_DATABASE_URL"),
        "TURSO_AUTH_TOKEN": _get("TURSO_AUTH_TOKEN"),
    }
