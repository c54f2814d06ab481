"""Backend access for NextPVR: session handling and one module per procedure family."""
from .auth import SessionManager, compute_login_digest
from .client import NextPvrClient

__all__ = ["NextPvrClient", "SessionManager", "compute_login_digest"]
