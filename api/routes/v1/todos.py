"""
api/routes/v1/todos.py -- The caller's own todo items.

Routes:
  GET    /todos        -- list (filter by completed=true|false, paginated)
  POST   /todos        -- create; 201
  PATCH  /todos/{id}   -- update title and/or completed
  DELETE /todos/{id}   -- soft delete

Every route is scoped to the authenticated caller. Another user's todo id
answers 404, the same as an id that never existed.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.models import PageInfo, TodoCreate, TodoDeletedResponse, TodoListResponse, TodoOut, TodoPatch, TodoResponse
from api.pagination import Page, page_params
from auth.dependencies import require_role
from auth.models import Identity, Role
from core.errors import NotFoundError
from todos.store import TodoStore

router = APIRouter()

_TODO_NOT_FOUND = "Todo not found."


@router.get("/todos", response_model=TodoListResponse)
async def list_todos(
    request: Request,
    completed: Optional[str] = Query(None, pattern="^(true|false)$"),
    page: Page = Depends(page_params),
    identity: Identity = Depends(require_role(Role.user)),
) -> TodoListResponse:
    store: TodoStore = request.app.state.todo_store
    flag = None if completed is None else completed == "true"
    items, total = await store.list_by_owner(identity.id, completed=flag, limit=page.limit, offset=page.offset)
    return TodoListResponse(
        todos=[TodoOut.from_todo(t) for t in items],
        page=PageInfo(limit=page.limit, offset=page.offset, total=total),
    )


@router.post("/todos", response_model=TodoResponse, status_code=201)
async def create_todo(
    request: Request,
    body: TodoCreate,
    identity: Identity = Depends(require_role(Role.user)),
) -> TodoResponse:
    store: TodoStore = request.app.state.todo_store
    todo = await store.create(identity.id, body.title)
    return TodoResponse(todo=TodoOut.from_todo(todo))


@router.patch("/todos/{todo_id}", response_model=TodoResponse)
async def update_todo(
    request: Request,
    todo_id: str,
    body: TodoPatch,
    identity: Identity = Depends(require_role(Role.user)),
) -> TodoResponse:
    store: TodoStore = request.app.state.todo_store
    todo = await store.update(identity.id, todo_id, title=body.title, completed=body.completed)
    if todo is None:
        raise NotFoundError(_TODO_NOT_FOUND)
    return TodoResponse(todo=TodoOut.from_todo(todo))


@router.delete("/todos/{todo_id}", response_model=TodoDeletedResponse)
async def delete_todo(
    request: Request,
    todo_id: str,
    identity: Identity = Depends(require_role(Role.user)),
) -> TodoDeletedResponse:
    store: TodoStore = request.app.state.todo_store
    todo = await store.soft_delete(identity.id, todo_id)
    if todo is None:
        raise NotFoundError(_TODO_NOT_FOUND)
    return TodoDeletedResponse(deleted=TodoOut.from_todo(todo))
