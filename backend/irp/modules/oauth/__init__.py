"""Google sign-in: provider client and account linking."""

from .google_provider import GoogleOAuthProvider, google_oauth
from .linker import ExternalIdentity, link_external_identity

__all__ = ["GoogleOAuthProvider", "google_oauth", "ExternalIdentity", "link_external_identity"]
