"""
api/routes/characters.py -- CRUD routes for the characters resource.

Routes and who may call them:
  GET    /characters        -- any authenticated user; 404 when none exist
  GET    /characters/{id}   -- any authenticated user
  POST   /characters        -- admin, user
  PATCH  /characters/{id}   -- admin
  DELETE /characters/{id}   -- admin

Every route requires a valid access token (router-level dependency). Role
checks are added per route with require_roles(). Path ids are parsed in the
handler, after auth, so an id that is not an integer is a 404 like any other
unknown id. FastAPI caches get_current_claims per request, so a role-gated
route verifies the token only once.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import CharacterCreate, CharacterPatch, CharacterResponse
from auth.dependencies import get_current_claims, require_roles
from auth.models import Role
from characters.store import CharacterStore

router = APIRouter(prefix="/characters", dependencies=[Depends(get_current_claims)])


def _not_found(message: str = "Character not found.") -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": message})


def _parse_id(raw: str) -> int:
    if not (raw.isascii() and raw.isdigit()):
        raise _not_found()
    return int(raw)


@router.get("", response_model=list[CharacterResponse])
async def list_characters(request: Request) -> list[CharacterResponse]:
    store: CharacterStore = request.app.state.characters
    characters = store.list_characters()
    if not characters:
        raise _not_found("No characters created.")
    return [CharacterResponse.from_character(c) for c in characters]


@router.get("/{character_id}", response_model=CharacterResponse)
async def get_character(request: Request, character_id: str) -> CharacterResponse:
    store: CharacterStore = request.app.state.characters
    character = store.get(_parse_id(character_id))
    if character is None:
        raise _not_found()
    return CharacterResponse.from_character(character)


@router.post(
    "",
    response_model=CharacterResponse,
    status_code=201,
    dependencies=[Depends(require_roles(Role.admin, Role.user))],
)
async def create_character(request: Request, body: CharacterCreate) -> CharacterResponse:
    store: CharacterStore = request.app.state.characters
    character = store.create(body.name, body.last_name)
    return CharacterResponse.from_character(character)


@router.patch(
    "/{character_id}",
    response_model=CharacterResponse,
    dependencies=[Depends(require_roles(Role.admin))],
)
async def update_character(request: Request, character_id: str, body: CharacterPatch) -> CharacterResponse:
    """Partially update a character. Admin only.

    An empty patch is rejected with 400 rather than silently returning the
    unchanged record.
    """
    if body.name is None and body.last_name is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    store: CharacterStore = request.app.state.characters
    character = store.update(_parse_id(character_id), name=body.name, last_name=body.last_name)
    if character is None:
        raise _not_found()
    return CharacterResponse.from_character(character)


@router.delete(
    "/{character_id}",
    status_code=204,
    dependencies=[Depends(require_roles(Role.admin))],
)
async def delete_character(request: Request, character_id: str) -> Response:
    store: CharacterStore = request.app.state.characters
    if not store.delete(_parse_id(character_id)):
        raise _not_found()
    return Response(status_code=204, media_type="application/json")
