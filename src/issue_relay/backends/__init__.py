"""Remote service clients: the Linear catalog and the Vercel hosting API."""

from issue_relay.backends.linear import LinearCatalog, LinearError
from issue_relay.backends.vercel import VercelClient, VercelError

__all__ = ["LinearCatalog", "LinearError", "VercelClient", "VercelError"]
