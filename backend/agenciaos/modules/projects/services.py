# agenciaos/modules/projects/services.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import HTTPException, status
from loguru import logger

from agenciaos.core.counters import CounterService
from agenciaos.core.repository import to_naive_utc
from agenciaos.core.tenant import TenantContext
from agenciaos.models.api_common import PaginatedResponse, Pagination
from agenciaos.modules.agencies.repository import UserRepository
from agenciaos.modules.clients.repository import ClientRepository
from .models import (
    BoardCreateAPI, BoardInDB, BoardUpdateAPI, ProjectAPI, ProjectCreateAPI, ProjectInDB,
    ProjectUpdateAPI, TaskCreateAPI, TaskInDB, TaskMoveAPI, TaskUpdateAPI,
)
from .repository import BoardRepository, ProjectRepository, TaskRepository

ProjectNotFound = HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
BoardNotFound = HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Board not found")
TaskNotFound = HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")

def _check_dates(start: Optional[datetime], end: Optional[datetime]):
    if start is not None and end is not None and to_naive_utc(start) >= to_naive_utc(end):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Start date must be before end date")

class ProjectService:

    async def get_project(self, tenant: TenantContext, project_id: str | ObjectId, project_repo: ProjectRepository) -> ProjectInDB:
        project = await project_repo.get_for_agency(project_id, tenant.agency_id)
        if project is None:
            raise ProjectNotFound
        return project

    async def _check_client(self, tenant: TenantContext, client_id: str, client_repo: ClientRepository) -> ObjectId:
        client = await client_repo.get_for_agency(client_id, tenant.agency_id)
        if client is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
        return client.id

    async def list_projects(
        self,
        tenant: TenantContext,
        project_repo: ProjectRepository,
        status_filter: Optional[str] = None,
        client_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> PaginatedResponse[ProjectAPI]:
        query: Dict[str, Any] = {}
        if status_filter:
            query["status"] = status_filter
        if client_id:
            client_obj_id = project_repo._to_objectid(client_id)
            if client_obj_id is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid clientId")
            query["client_id"] = client_obj_id

        total = await project_repo.count_for_agency(tenant.agency_id, query)
        projects = await project_repo.list_for_agency(
            tenant.agency_id, query, skip=(page - 1) * limit, limit=limit, sort=[("created_at", -1)]
        )
        return PaginatedResponse[ProjectAPI](
            items=[ProjectAPI.model_validate(p.model_dump()) for p in projects],
            pagination=Pagination.build(page, limit, total),
        )

    async def create_project(
        self, tenant: TenantContext, data: ProjectCreateAPI, project_repo: ProjectRepository, client_repo: ClientRepository
    ) -> ProjectInDB:
        client_obj_id = await self._check_client(tenant, data.client_id, client_repo)
        _check_dates(data.start_date, data.end_date)
        project = await project_repo.create({
            **data.model_dump(),
            "client_id": client_obj_id,
            "agency_id": tenant.agency_id,
        })
        logger.bind(service="ProjectService", project_id=str(project.id)).info("Project created.")
        return project

    async def update_project(
        self,
        tenant: TenantContext,
        project_id: str,
        data: ProjectUpdateAPI,
        project_repo: ProjectRepository,
        client_repo: ClientRepository,
    ) -> ProjectInDB:
        project = await self.get_project(tenant, project_id, project_repo)
        fields = data.model_dump(exclude_unset=True)
        for required in ("name", "status", "client_id"):
            if fields.get(required) is None:
                fields.pop(required, None)
        if "client_id" in fields:
            fields["client_id"] = await self._check_client(tenant, fields["client_id"], client_repo)
        _check_dates(fields.get("start_date", project.start_date), fields.get("end_date", project.end_date))

        updated = await project_repo.update_for_agency(project.id, tenant.agency_id, fields)
        if updated is None:
            raise ProjectNotFound
        return updated

    async def delete_project(
        self,
        tenant: TenantContext,
        project_id: str,
        project_repo: ProjectRepository,
        board_repo: BoardRepository,
        task_repo: TaskRepository,
    ):
        project = await self.get_project(tenant, project_id, project_repo)
        # Boards e tarefas do projeto vão junto
        await task_repo.delete_many_for_agency(tenant.agency_id, {"project_id": project.id})
        await board_repo.delete_many_for_agency(tenant.agency_id, {"project_id": project.id})
        await project_repo.delete_for_agency(project.id, tenant.agency_id)
        logger.bind(service="ProjectService", project_id=str(project.id)).info("Project deleted with its boards and tasks.")

class BoardService:

    async def get_board(self, tenant: TenantContext, board_id: str | ObjectId, board_repo: BoardRepository) -> BoardInDB:
        board = await board_repo.get_for_agency(board_id, tenant.agency_id)
        if board is None:
            raise BoardNotFound
        return board

    async def list_boards(
        self, tenant: TenantContext, project_id: str, project_repo: ProjectRepository, board_repo: BoardRepository
    ) -> List[BoardInDB]:
        project = await ProjectService().get_project(tenant, project_id, project_repo)
        return await board_repo.list_for_project(tenant.agency_id, project.id)

    async def create_board(
        self,
        tenant: TenantContext,
        data: BoardCreateAPI,
        project_repo: ProjectRepository,
        board_repo: BoardRepository,
        counters: CounterService,
    ) -> BoardInDB:
        project = await ProjectService().get_project(tenant, data.project_id, project_repo)
        position = await counters.next_board_position(str(project.id))
        return await board_repo.create({
            "project_id": project.id,
            "name": data.name.strip(),
            "color": data.color,
            "position": position,
            "agency_id": tenant.agency_id,
        })

    async def update_board(self, tenant: TenantContext, board_id: str, data: BoardUpdateAPI, board_repo: BoardRepository) -> BoardInDB:
        fields = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        updated = await board_repo.update_for_agency(board_id, tenant.agency_id, fields)
        if updated is None:
            raise BoardNotFound
        return updated

    async def delete_board(self, tenant: TenantContext, board_id: str, board_repo: BoardRepository, task_repo: TaskRepository):
        board = await self.get_board(tenant, board_id, board_repo)
        await task_repo.delete_many_for_agency(tenant.agency_id, {"board_id": board.id})
        await board_repo.delete_for_agency(board.id, tenant.agency_id)

class TaskService:

    async def get_task(self, tenant: TenantContext, task_id: str, task_repo: TaskRepository) -> TaskInDB:
        task = await task_repo.get_for_agency(task_id, tenant.agency_id)
        if task is None:
            raise TaskNotFound
        return task

    async def _check_board(self, tenant: TenantContext, board_id: str, project_id: ObjectId, board_repo: BoardRepository) -> ObjectId:
        board = await board_repo.get_for_agency(board_id, tenant.agency_id)
        if board is None or board.project_id != project_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Board does not belong to the project")
        return board.id

    async def _check_assignee(self, tenant: TenantContext, user_id: str, user_repo: UserRepository) -> ObjectId:
        user = await user_repo.get_for_agency(user_id, tenant.agency_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assigned user not found")
        return user.id

    async def list_tasks(
        self,
        tenant: TenantContext,
        task_repo: TaskRepository,
        project_id: Optional[str] = None,
        board_id: Optional[str] = None,
    ) -> List[TaskInDB]:
        query: Dict[str, Any] = {}
        for field, value in (("project_id", project_id), ("board_id", board_id)):
            if value:
                obj_id = task_repo._to_objectid(value)
                if obj_id is None:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {field}")
                query[field] = obj_id
        return await task_repo.list_for_agency(
            tenant.agency_id, query, limit=0, sort=[("board_id", 1), ("position", 1)]
        )

    async def create_task(
        self,
        tenant: TenantContext,
        data: TaskCreateAPI,
        project_repo: ProjectRepository,
        board_repo: BoardRepository,
        task_repo: TaskRepository,
        user_repo: UserRepository,
    ) -> TaskInDB:
        project = await ProjectService().get_project(tenant, data.project_id, project_repo)
        board_obj_id = await self._check_board(tenant, data.board_id, project.id, board_repo)
        assignee = await self._check_assignee(tenant, data.assigned_to, user_repo) if data.assigned_to else None
        task = await task_repo.create({
            **data.model_dump(),
            "title": data.title.strip(),
            "project_id": project.id,
            "board_id": board_obj_id,
            "assigned_to": assignee,
            "agency_id": tenant.agency_id,
        })
        logger.bind(service="TaskService", task_id=str(task.id)).info("Task created.")
        return task

    async def update_task(
        self, tenant: TenantContext, task_id: str, data: TaskUpdateAPI, task_repo: TaskRepository, user_repo: UserRepository
    ) -> TaskInDB:
        task = await self.get_task(tenant, task_id, task_repo)
        fields = data.model_dump(exclude_unset=True)
        for required in ("title", "priority", "position"):
            if fields.get(required) is None:
                fields.pop(required, None)
        if "assigned_to" in fields:
            assignee = fields["assigned_to"]
            fields["assigned_to"] = await self._check_assignee(tenant, assignee, user_repo) if assignee else None
        updated = await task_repo.update_for_agency(task.id, tenant.agency_id, fields)
        if updated is None:
            raise TaskNotFound
        return updated

    async def move_task(
        self, tenant: TenantContext, task_id: str, data: TaskMoveAPI, board_repo: BoardRepository, task_repo: TaskRepository
    ) -> TaskInDB:
        task = await self.get_task(tenant, task_id, task_repo)
        board_obj_id = await self._check_board(tenant, data.board_id, task.project_id, board_repo)
        updated = await task_repo.update_for_agency(task.id, tenant.agency_id, {"board_id": board_obj_id, "position": data.position})
        if updated is None:
            raise TaskNotFound
        return updated

    async def delete_task(self, tenant: TenantContext, task_id: str, task_repo: TaskRepository):
        if not await task_repo.delete_for_agency(task_id, tenant.agency_id):
            raise TaskNotFound

# Factories
async def get_project_service() -> ProjectService:
    return ProjectService()

async def get_board_service() -> BoardService:
    return BoardService()

async def get_task_service() -> TaskService:
    return TaskService()
