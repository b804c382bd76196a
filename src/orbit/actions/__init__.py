from orbit.actions.protocol import Anonymous, LocalFile, Omitted, Request, StreamFile
from orbit.actions.discovery import Action, discover

__all__ = ["Action", "discover", "Request", "StreamFile", "LocalFile", "Omitted", "Anonymous"]
