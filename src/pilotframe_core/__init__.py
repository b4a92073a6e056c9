"""PilotFrame Core - configuration, document schemas, store client and the HTTP gateway."""

__version__ = "0.2.0"
