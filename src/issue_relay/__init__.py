"""issue-relay: a REST and agent façade over Linear that accepts human-readable references."""

__version__ = "0.1.0"
