# -----------------------------------------------------------------------------
# Error taxonomy
# Purpose:
#   Domain errors raised by the registry, solver and stores. Each carries the
#   HTTP status the API layer renders it with and a user-facing message.
#   "Unsolvable" is deliberately absent: it is a normal solver outcome.
# -----------------------------------------------------------------------------

from __future__ import annotations


# Malformed catalog inputs (bad YAML shape, duplicate ids, bad expressions).
class CatalogError(Exception): pass


class PhysikError(Exception):
    status_code = 500
    default_message = "Interner Serverfehler"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(PhysikError):
    # Missing or invalid required fields
    status_code = 400
    default_message = "Ungültige Anfrage"


class NotFound(PhysikError):
    status_code = 404
    default_message = "Nicht gefunden"


class Unauthorized(PhysikError):
    status_code = 401
    default_message = "Nicht angemeldet"


class Conflict(PhysikError):
    # Duplicate username / duplicate favorite; the API contract reports these as 400.
    status_code = 400
    default_message = "Eintrag existiert bereits"


class InternalError(PhysikError):
    status_code = 500
    default_message = "Interner Serverfehler"
