# --- Physik Formelsammlung: JSON API (FastAPI) --------------------------------
# Purpose: HTTP surface over the formula registry, solver, topic index, forum,
# accounts and favorites. Domain errors (physik.errors) are rendered as
# {"message": ...}; everything else is plain dict responses.
# ------------------------------------------------------------------------------

from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from physik.accounts import AccountService
from physik.catalog import Catalog
from physik.config import Settings
from physik.errors import BadRequest, NotFound, PhysikError
from physik.favorites import FavoritesService
from physik.forum import FORUM_SEED_FILE, ForumService, load_forum_seed
from physik.search import search
from physik.solver import Solver, SolverResult
from physik.stores import (InMemoryFavoritesStore, InMemoryForumStore,
                           InMemorySessionStore, InMemoryUserStore)

logger = logging.getLogger(__name__)

# Framework-level HTTP errors (routing, methods) in German
HTTP_MESSAGES = {
    404: NotFound.default_message,
    405: "Methode nicht erlaubt",
    413: "Anfrage zu groß",
    415: "Nicht unterstützter Inhaltstyp",
}
HTTP_FALLBACK_MESSAGE = "Anfrage konnte nicht verarbeitet werden"

# Served for every non-API GET; the front end routes client-side.
APP_SHELL = """<!DOCTYPE html>
<html lang="de">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>Physik Formelsammlung</title>
</head>
<body>
  <div id="app"></div>
  <noscript>Diese Anwendung benötigt JavaScript.</noscript>
</body>
</html>
"""


# ----------------------------- Schemas ----------------------------------------
# All fields optional: the services reject missing ones with a German 400.

class SolveRequest(BaseModel):
    # values: symbol -> number or numeric string; anything else counts as absent
    target: Optional[str] = None
    values: Dict[str, Any] = {}

class SolvableRequest(BaseModel):
    values: Dict[str, Any] = {}

class RegisterRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None

class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None

class FavoriteRequest(BaseModel):
    formulaId: Optional[str] = None

class ForumTopicRequest(BaseModel):
    title: Optional[str] = None
    category: Optional[str] = None
    author: Optional[str] = None
    content: Optional[str] = None

class ForumReplyRequest(BaseModel):
    author: Optional[str] = None
    content: Optional[str] = None


def _solve_payload(res: SolverResult) -> Dict[str, Any]:
    result = None
    if res.solved:
        # JSON has no inf/nan; non-finite values travel as strings
        value = res.value if res.finite else str(res.value)
        result = {"value": value, "unit": res.unit}
    return {
        "formulaId": res.formula_id,
        "target": res.target,
        "status": res.status,
        "result": result,
        "trace": res.trace,
    }


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build an application with its own catalog and fresh in-memory stores.
    Tests pass explicit Settings; the module-level `app` reads the environment.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    catalog = Catalog.from_dir(settings.catalog_dir)
    solver = Solver(catalog)
    favorites_store = InMemoryFavoritesStore()
    accounts = AccountService(
        users=InMemoryUserStore(),
        sessions=InMemorySessionStore(settings.session_ttl_seconds),
        favorites=favorites_store,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    favorites = FavoritesService(catalog, favorites_store)
    seed = load_forum_seed(Path(settings.catalog_dir) / FORUM_SEED_FILE)
    forum = ForumService(InMemoryForumStore(seed))
    logger.info("Forum seeded with %d topics", len(seed))

    app = FastAPI(title="Physik Formelsammlung API")
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.solver = solver
    app.state.accounts = accounts
    app.state.favorites = favorites
    app.state.forum = forum

    cookie_name = settings.session_cookie_name

    def _token(request: Request) -> Optional[str]:
        return request.cookies.get(cookie_name)

    # ----------------------------- Errors -------------------------------------
    @app.exception_handler(PhysikError)
    async def physik_error(request: Request, exc: PhysikError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        logger.debug("Rejected body for %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"message": BadRequest.default_message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        # Unmatched routes / wrong methods keep the {"message": ...} shape
        message = HTTP_MESSAGES.get(exc.status_code, HTTP_FALLBACK_MESSAGE)
        return JSONResponse(status_code=exc.status_code, content={"message": message},
                            headers=getattr(exc, "headers", None))

    # ----------------------------- Routes -------------------------------------
    @app.get("/health")
    def health(): return {"ok": True}

    # Formula registry + solver
    @app.get("/api/formulas")
    def list_formulas():
        return [f.to_dict() for f in catalog.get_all()]

    @app.get("/api/formulas/{formula_id}")
    def get_formula(formula_id: str):
        return catalog.get_by_id(formula_id).to_dict()

    @app.post("/api/formulas/{formula_id}/solve")
    def solve(formula_id: str, req: SolveRequest):
        """
        Solve one formula for `target` from the supplied values.
        "Not enough inputs" is a 200 with status 'unsolvable' and result null.
        """
        catalog.get_by_id(formula_id)
        if not req.target:
            raise BadRequest("Zielgröße erforderlich")
        return _solve_payload(solver.solve(formula_id, req.target, req.values))

    @app.post("/api/formulas/{formula_id}/solvable")
    def solvable(formula_id: str, req: SolvableRequest):
        return {"formulaId": formula_id, "targets": solver.solvable_targets(formula_id, req.values)}

    # Topic index + search
    @app.get("/api/topics")
    def list_topics():
        return [t.to_dict() for t in catalog.get_all_topics()]

    @app.get("/api/topics/{topic_id}")
    def get_topic(topic_id: str):
        return catalog.get_topic_by_id(topic_id).to_dict()

    @app.get("/api/search")
    def search_catalog(q: Optional[str] = None):
        return search(catalog, q).to_dict()

    # Forum
    @app.get("/api/forum/topics")
    def list_forum_topics():
        return [t.to_dict() for t in forum.list_topics()]

    @app.get("/api/forum/topics/{topic_id}")
    def get_forum_topic(topic_id: str):
        return forum.get_topic(topic_id).to_dict()

    @app.post("/api/forum/topics", status_code=201)
    def create_forum_topic(req: ForumTopicRequest):
        topic = forum.create_topic(req.title, req.category, req.author, req.content)
        return topic.to_dict()

    @app.post("/api/forum/topics/{topic_id}/replies", status_code=201)
    def add_forum_reply(topic_id: str, req: ForumReplyRequest):
        return forum.add_reply(topic_id, req.author, req.content).to_dict()

    # Accounts
    @app.post("/api/register", status_code=201)
    def register(req: RegisterRequest):
        user_id = accounts.register(req.username, req.password, req.email)
        return {"message": "Registrierung erfolgreich", "userId": user_id}

    @app.post("/api/login")
    def login(req: LoginRequest, response: Response):
        user, session = accounts.login(req.username, req.password)
        response.set_cookie(
            key=cookie_name,
            value=session.token,
            max_age=settings.session_ttl_seconds,
            httponly=True,
            samesite="lax",
            secure=settings.session_cookie_secure,
        )
        return {"message": "Anmeldung erfolgreich", "user": user.to_public()}

    @app.post("/api/logout")
    def logout(request: Request, response: Response):
        accounts.logout(_token(request))
        response.delete_cookie(cookie_name, httponly=True, samesite="lax",
                               secure=settings.session_cookie_secure)
        return {"message": "Erfolgreich abgemeldet"}

    @app.get("/api/user")
    def current_user(request: Request):
        return accounts.current_user(_token(request)).to_public()

    @app.get("/api/auth/status")
    def auth_status(request: Request):
        return accounts.status(_token(request))

    # Favorites (session required)
    @app.post("/api/favorites/formulas")
    def add_favorite(req: FavoriteRequest, request: Request):
        session = accounts.require_session(_token(request))
        favorites.add(session.user_id, req.formulaId)
        return {"message": "Formel zu Favoriten hinzugefügt"}

    @app.delete("/api/favorites/formulas/{formula_id}")
    def remove_favorite(formula_id: str, request: Request):
        session = accounts.require_session(_token(request))
        favorites.remove(session.user_id, formula_id)
        return {"message": "Formel aus Favoriten entfernt"}

    @app.get("/api/favorites/formulas")
    def list_favorites(request: Request):
        session = accounts.require_session(_token(request))
        return [f.to_dict() for f in favorites.list(session.user_id)]

    # App shell (registered last so every API route wins)
    @app.get("/{full_path:path}", include_in_schema=False)
    def app_shell(full_path: str):
        if full_path == "api" or full_path.startswith("api/"):
            raise NotFound()
        return HTMLResponse(APP_SHELL)

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn using env settings."""
    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port,
                log_level=settings.log_level.lower())


app = create_app()

if __name__ == "__main__":
    run()
