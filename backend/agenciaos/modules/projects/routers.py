# agenciaos/modules/projects/routers.py
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from typing import Annotated, List, Optional
from loguru import logger

from agenciaos.core.counters import CounterService, get_counter_service
from agenciaos.core.tenant import CurrentTenant, TenantContext, require_role
from agenciaos.models.api_common import PaginatedResponse, StatusResponse
from agenciaos.modules.agencies.repository import UserRepository, get_user_repository
from agenciaos.modules.clients.repository import ClientRepository, get_client_repository
from .models import (
    PROJECT_STATUSES, BoardAPI, BoardCreateAPI, BoardUpdateAPI, ProjectAPI, ProjectCreateAPI,
    ProjectUpdateAPI, TaskAPI, TaskCreateAPI, TaskMoveAPI, TaskUpdateAPI,
)
from .repository import (
    BoardRepository, ProjectRepository, TaskRepository,
    get_board_repository, get_project_repository, get_task_repository,
)
from .services import (
    BoardService, ProjectService, TaskService,
    get_board_service, get_project_service, get_task_service,
)

projects_router = APIRouter()
boards_router = APIRouter()
tasks_router = APIRouter()

ProjectRepo = Annotated[ProjectRepository, Depends(get_project_repository)]
BoardRepo = Annotated[BoardRepository, Depends(get_board_repository)]
TaskRepo = Annotated[TaskRepository, Depends(get_task_repository)]

def _internal_error(action: str, e: Exception) -> HTTPException:
    logger.exception(f"Unexpected error {action}: {e}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Internal server error {action}.")

# --- Projects ---

@projects_router.get("", response_model=PaginatedResponse[ProjectAPI], summary="List projects", tags=["Projects"])
async def list_projects(
    tenant: CurrentTenant,
    project_repo: ProjectRepo,
    status_filter: Optional[PROJECT_STATUSES] = Query(None, alias="status"),
    client_id: Optional[str] = Query(None, alias="clientId"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    project_service: ProjectService = Depends(get_project_service),
):
    return await project_service.list_projects(
        tenant, project_repo, status_filter=status_filter, client_id=client_id, page=page, limit=limit
    )

@projects_router.post("", response_model=ProjectAPI, status_code=status.HTTP_201_CREATED, summary="Create a project", tags=["Projects"])
async def create_project(
    data: ProjectCreateAPI,
    tenant: CurrentTenant,
    project_repo: ProjectRepo,
    client_repo: Annotated[ClientRepository, Depends(get_client_repository)],
    project_service: ProjectService = Depends(get_project_service),
):
    try:
        project = await project_service.create_project(tenant, data, project_repo, client_repo)
        return ProjectAPI.model_validate(project.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        raise _internal_error("creating project", e)

@projects_router.get("/{project_id}", response_model=ProjectAPI, summary="Get a project", tags=["Projects"])
async def get_project(
    tenant: CurrentTenant,
    project_repo: ProjectRepo,
    project_id: str = Path(..., description="ID do projeto (ObjectId)"),
    project_service: ProjectService = Depends(get_project_service),
):
    project = await project_service.get_project(tenant, project_id, project_repo)
    return ProjectAPI.model_validate(project.model_dump())

@projects_router.put("/{project_id}", response_model=ProjectAPI, summary="Update a project", tags=["Projects"])
async def update_project(
    data: ProjectUpdateAPI,
    tenant: CurrentTenant,
    project_repo: ProjectRepo,
    client_repo: Annotated[ClientRepository, Depends(get_client_repository)],
    project_id: str = Path(..., description="ID do projeto (ObjectId)"),
    project_service: ProjectService = Depends(get_project_service),
):
    try:
        project = await project_service.update_project(tenant, project_id, data, project_repo, client_repo)
        return ProjectAPI.model_validate(project.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        raise _internal_error(f"updating project {project_id}", e)

@projects_router.delete("/{project_id}", response_model=StatusResponse, summary="Delete a project (ADMIN+)", tags=["Projects"])
async def delete_project(
    tenant: Annotated[TenantContext, Depends(require_role("ADMIN"))],
    project_repo: ProjectRepo,
    board_repo: BoardRepo,
    task_repo: TaskRepo,
    project_id: str = Path(..., description="ID do projeto (ObjectId)"),
    project_service: ProjectService = Depends(get_project_service),
):
    await project_service.delete_project(tenant, project_id, project_repo, board_repo, task_repo)
    return StatusResponse(status="success", message="Project deleted")

# --- Boards (kanban) ---

@boards_router.get("", response_model=List[BoardAPI], summary="List boards of a project", tags=["Kanban"])
async def list_boards(
    tenant: CurrentTenant,
    project_repo: ProjectRepo,
    board_repo: BoardRepo,
    project_id: str = Query(..., alias="projectId"),
    board_service: BoardService = Depends(get_board_service),
):
    boards = await board_service.list_boards(tenant, project_id, project_repo, board_repo)
    return [BoardAPI.model_validate(b.model_dump()) for b in boards]

@boards_router.post("", response_model=BoardAPI, status_code=status.HTTP_201_CREATED, summary="Create a board", tags=["Kanban"])
async def create_board(
    data: BoardCreateAPI,
    tenant: CurrentTenant,
    project_repo: ProjectRepo,
    board_repo: BoardRepo,
    counters: Annotated[CounterService, Depends(get_counter_service)],
    board_service: BoardService = Depends(get_board_service),
):
    try:
        board = await board_service.create_board(tenant, data, project_repo, board_repo, counters)
        return BoardAPI.model_validate(board.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        raise _internal_error("creating board", e)

@boards_router.put("/{board_id}", response_model=BoardAPI, summary="Update a board", tags=["Kanban"])
async def update_board(
    data: BoardUpdateAPI,
    tenant: CurrentTenant,
    board_repo: BoardRepo,
    board_id: str = Path(..., description="ID do board (ObjectId)"),
    board_service: BoardService = Depends(get_board_service),
):
    board = await board_service.update_board(tenant, board_id, data, board_repo)
    return BoardAPI.model_validate(board.model_dump())

@boards_router.delete("/{board_id}", response_model=StatusResponse, summary="Delete a board and its tasks", tags=["Kanban"])
async def delete_board(
    tenant: CurrentTenant,
    board_repo: BoardRepo,
    task_repo: TaskRepo,
    board_id: str = Path(..., description="ID do board (ObjectId)"),
    board_service: BoardService = Depends(get_board_service),
):
    await board_service.delete_board(tenant, board_id, board_repo, task_repo)
    return StatusResponse(status="success", message="Board deleted")

# --- Tasks ---

@tasks_router.get("", response_model=List[TaskAPI], summary="List tasks", tags=["Kanban"])
async def list_tasks(
    tenant: CurrentTenant,
    task_repo: TaskRepo,
    project_id: Optional[str] = Query(None, alias="projectId"),
    board_id: Optional[str] = Query(None, alias="boardId"),
    task_service: TaskService = Depends(get_task_service),
):
    tasks = await task_service.list_tasks(tenant, task_repo, project_id=project_id, board_id=board_id)
    return [TaskAPI.model_validate(t.model_dump()) for t in tasks]

@tasks_router.post("", response_model=TaskAPI, status_code=status.HTTP_201_CREATED, summary="Create a task", tags=["Kanban"])
async def create_task(
    data: TaskCreateAPI,
    tenant: CurrentTenant,
    project_repo: ProjectRepo,
    board_repo: BoardRepo,
    task_repo: TaskRepo,
    user_repo: Annotated[UserRepository, Depends(get_user_repository)],
    task_service: TaskService = Depends(get_task_service),
):
    try:
        task = await task_service.create_task(tenant, data, project_repo, board_repo, task_repo, user_repo)
        return TaskAPI.model_validate(task.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        raise _internal_error("creating task", e)

@tasks_router.put("/{task_id}", response_model=TaskAPI, summary="Update a task", tags=["Kanban"])
async def update_task(
    data: TaskUpdateAPI,
    tenant: CurrentTenant,
    task_repo: TaskRepo,
    user_repo: Annotated[UserRepository, Depends(get_user_repository)],
    task_id: str = Path(..., description="ID da tarefa (ObjectId)"),
    task_service: TaskService = Depends(get_task_service),
):
    try:
        task = await task_service.update_task(tenant, task_id, data, task_repo, user_repo)
        return TaskAPI.model_validate(task.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        raise _internal_error(f"updating task {task_id}", e)

@tasks_router.patch("/{task_id}/move", response_model=TaskAPI, summary="Move a task to another board / position", tags=["Kanban"])
async def move_task(
    data: TaskMoveAPI,
    tenant: CurrentTenant,
    board_repo: BoardRepo,
    task_repo: TaskRepo,
    task_id: str = Path(..., description="ID da tarefa (ObjectId)"),
    task_service: TaskService = Depends(get_task_service),
):
    task = await task_service.move_task(tenant, task_id, data, board_repo, task_repo)
    return TaskAPI.model_validate(task.model_dump())

@tasks_router.delete("/{task_id}", response_model=StatusResponse, summary="Delete a task", tags=["Kanban"])
async def delete_task(
    tenant: CurrentTenant,
    task_repo: TaskRepo,
    task_id: str = Path(..., description="ID da tarefa (ObjectId)"),
    task_service: TaskService = Depends(get_task_service),
):
    await task_service.delete_task(tenant, task_id, task_repo)
    return StatusResponse(status="success", message="Task deleted")
