"""Client layer over the Jira REST API for issue operations and ranking."""

__version__ = "0.1.0"
