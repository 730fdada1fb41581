"""HTTP façade over issue operations and traces."""

from issue_relay.api.app import create_app

__all__ = ["create_app"]
