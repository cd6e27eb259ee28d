"""
Tool gateway: validates inbound tool calls, dispatches them to the query,
report and job services, and translates errors to stable codes.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, ValidationError

from spring_twin.errors import SpringTwinError
from spring_twin.jobs.coordinator import JobCoordinator
from spring_twin.project.registry import ProjectRegistry
from spring_twin.report.query_service import QueryService
from spring_twin.report.report_builder import ReportBuilder

from .tool_definitions import ProjectParams, ToolDefinition, ToolParams, find_tool, get_tool_definitions

INVALID_ARGUMENTS = "INVALID_ARGUMENTS"
UNKNOWN_TOOL = "UNKNOWN_TOOL"
PERMISSION_DENIED = "PERMISSION_DENIED"
INTERNAL_ERROR = "INTERNAL_ERROR"


class ToolError(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class ToolResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[ToolError] = None

    @classmethod
    def ok(cls, data: Any) -> "ToolResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ToolResponse":
        return cls(success=False, error=ToolError(code=code, message=message, details=details or None))


def _validation_details(exc: ValidationError) -> Dict[str, Any]:
    return {
        "errors": [
            {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
            for err in exc.errors()
        ]
    }


class ToolGateway:
    """Fixed manifest of typed operations for external callers."""

    def __init__(
        self,
        queries: QueryService,
        reports: ReportBuilder,
        coordinator: Optional[JobCoordinator] = None,
        *,
        registry: Optional[ProjectRegistry] = None,
        allow_write: bool = False,
    ) -> None:
        self.queries = queries
        self.reports = reports
        self.coordinator = coordinator
        self.registry = registry
        self.allow_write = allow_write
        self._handlers: Dict[str, Callable[[Any], Awaitable[Any]]] = {
            "list_classes": self._list_classes,
            "list_methods": self._list_methods,
            "list_endpoints": self._list_endpoints,
            "get_dependency_report": self._get_dependency_report,
            "explain_class": self._explain_class,
            "explain_method": self._explain_method,
            "explain_endpoint": self._explain_endpoint,
            "export_context": self._export_context,
            "get_job_status": self._get_job_status,
            "trigger_analysis": self._trigger_analysis,
            "cancel_analysis": self._cancel_analysis,
        }

    def tools(self) -> List[ToolDefinition]:
        return get_tool_definitions(self.allow_write)

    def manifest(self) -> List[Dict[str, Any]]:
        return [tool.to_dict() for tool in self.tools()]

    async def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResponse:
        tool = find_tool(name)
        if tool is None:
            return ToolResponse.fail(UNKNOWN_TOOL, f"Unknown tool: {name}")
        if tool.privileged and not self.allow_write:
            logger.warning(f"Rejected privileged tool call '{name}'")
            return ToolResponse.fail(PERMISSION_DENIED, f"Tool '{name}' requires write capability")

        try:
            params = tool.params.model_validate(arguments or {})
        except ValidationError as exc:
            return ToolResponse.fail(INVALID_ARGUMENTS, f"Invalid arguments for '{name}'", _validation_details(exc))

        try:
            if self.registry is not None and isinstance(params, ProjectParams):
                self.registry.get_project(params.project_id)
            data = await self._handlers[name](params)
        except SpringTwinError as exc:
            logger.info(f"Tool '{name}' failed with {exc.code}: {exc.message}")
            return ToolResponse.fail(exc.code, exc.message, exc.details)
        except Exception as exc:
            logger.exception(f"Error executing tool '{name}'")
            return ToolResponse.fail(INTERNAL_ERROR, f"Tool '{name}' failed: {exc}")
        return ToolResponse.ok(data)

    # handlers

    async def _list_classes(self, params: ToolParams):
        nodes = self.queries.list_classes(params.project_id, params.package, params.label)
        return {"classes": [node.to_dict() for node in nodes], "count": len(nodes)}

    async def _list_methods(self, params: ToolParams):
        nodes = self.queries.list_methods(params.project_id, params.package, params.class_id)
        return {"methods": [node.to_dict() for node in nodes], "count": len(nodes)}

    async def _list_endpoints(self, params: ToolParams):
        nodes = self.queries.list_endpoints(params.project_id, params.package, params.http_method)
        return {"endpoints": [node.to_dict() for node in nodes], "count": len(nodes)}

    async def _get_dependency_report(self, params: ToolParams):
        return self.queries.get_dependency_report(params.project_id, params.class_id, params.max_depth).to_dict()

    async def _explain_class(self, params: ToolParams):
        return self.reports.explain_class(params.project_id, params.class_id).to_dict()

    async def _explain_method(self, params: ToolParams):
        return self.reports.explain_method(params.project_id, params.method_id).to_dict()

    async def _explain_endpoint(self, params: ToolParams):
        return self.reports.explain_endpoint(params.project_id, params.endpoint_id).to_dict()

    async def _export_context(self, params: ToolParams):
        return self.reports.export_context(params.project_id, params.package).to_dict()

    def _require_coordinator(self) -> JobCoordinator:
        if self.coordinator is None:
            raise RuntimeError("Job coordinator is not configured")
        return self.coordinator

    async def _get_job_status(self, params: ToolParams):
        return {"job_id": params.job_id, **self._require_coordinator().get_job_status(params.job_id)}

    async def _trigger_analysis(self, params: ToolParams):
        job_id = await self._require_coordinator().trigger_analysis(
            params.project_id, params.include_packages, params.exclude_packages
        )
        return {"job_id": job_id}

    async def _cancel_analysis(self, params: ToolParams):
        job = await self._require_coordinator().cancel_job(params.job_id)
        return {"job_id": job.id, "acknowledged": True, **job.status()}


__all__ = [
    "INTERNAL_ERROR",
    "INVALID_ARGUMENTS",
    "PERMISSION_DENIED",
    "UNKNOWN_TOOL",
    "ToolError",
    "ToolGateway",
    "ToolResponse",
]
