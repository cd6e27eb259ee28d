"""
Tool definitions for the tool gateway.

Each tool has a name, a description and a pydantic parameter model whose
JSON schema is published in the manifest. The order of ``TOOL_DEFINITIONS``
is the manifest order.
"""

from dataclasses import dataclass
from typing import List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class ToolParams(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ProjectParams(ToolParams):
    project_id: str = Field(..., min_length=1, description="Project identifier")


class ListClassesParams(ProjectParams):
    package: Optional[str] = Field(None, description="Package pattern, e.g. com.acme.orders or com.*.api")
    label: Optional[str] = Field(None, description="Role label such as controller, service, repository")


class ListMethodsParams(ProjectParams):
    package: Optional[str] = Field(None, description="Package pattern of the owning class")
    class_id: Optional[str] = Field(None, description="Only methods of this class (fully qualified name)")


class ListEndpointsParams(ProjectParams):
    package: Optional[str] = Field(None, description="Package pattern of the controller class")
    http_method: Optional[Literal["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS", "TRACE"]] = Field(
        None, description="HTTP method filter"
    )


class DependencyReportParams(ProjectParams):
    class_id: str = Field(..., min_length=1, description="Root class (fully qualified name)")
    max_depth: Optional[int] = Field(None, ge=1, le=100, description="Stop the walk at this depth")


class ExplainClassParams(ProjectParams):
    class_id: str = Field(..., min_length=1, description="Class id (fully qualified name)")


class ExplainMethodParams(ProjectParams):
    method_id: str = Field(..., min_length=1, description="Method id, e.g. com.acme.OrderService#create(Order)")


class ExplainEndpointParams(ProjectParams):
    endpoint_id: str = Field(..., min_length=1, description="Endpoint id as returned by list_endpoints")


class ExportContextParams(ProjectParams):
    package: Optional[str] = Field(None, description="Limit the export to a package pattern")


class JobStatusParams(ToolParams):
    job_id: str = Field(..., min_length=1, description="Analysis job id")


class TriggerAnalysisParams(ProjectParams):
    include_packages: Optional[List[str]] = Field(None, description="Override the project's include patterns")
    exclude_packages: Optional[List[str]] = Field(None, description="Override the project's exclude patterns")


class CancelAnalysisParams(ToolParams):
    job_id: str = Field(..., min_length=1, description="Analysis job id")


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    params: Type[ToolParams]
    privileged: bool = False

    def parameter_schema(self) -> dict:
        return self.params.model_json_schema()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "parameterSchema": self.parameter_schema(),
        }


TOOL_DEFINITIONS: List[ToolDefinition] = [
    ToolDefinition(
        "list_classes",
        "List classes of the last committed graph, optionally filtered by package pattern and role label.",
        ListClassesParams,
    ),
    ToolDefinition(
        "list_methods",
        "List methods of the last committed graph, optionally filtered by package pattern or owning class.",
        ListMethodsParams,
    ),
    ToolDefinition(
        "list_endpoints",
        "List HTTP endpoints (path, method, produces, consumes, handler method).",
        ListEndpointsParams,
    ),
    ToolDefinition(
        "get_dependency_report",
        """Transitive DEPENDS_ON report for a class.

Returns direct and transitive dependencies and every dependency cycle
found, each cycle closing on its first class id.""",
        DependencyReportParams,
    ),
    ToolDefinition(
        "explain_class",
        "Explain a class: role labels, methods, endpoints, injected dependencies and dependents.",
        ExplainClassParams,
    ),
    ToolDefinition(
        "explain_method",
        "Explain a method: owning class, exposed endpoints, calls made and callers.",
        ExplainMethodParams,
    ),
    ToolDefinition(
        "explain_endpoint",
        "Explain an endpoint: handler method, controller, downstream call chain and controller dependencies.",
        ExplainEndpointParams,
    ),
    ToolDefinition(
        "export_context",
        "Export the architecture as Markdown suitable for an LLM prompt.",
        ExportContextParams,
    ),
    ToolDefinition(
        "get_job_status",
        "Get state, progress and error of an analysis job.",
        JobStatusParams,
    ),
    ToolDefinition(
        "trigger_analysis",
        "Start an analysis run for a project. Fails with CONFLICT while another run is active.",
        TriggerAnalysisParams,
        privileged=True,
    ),
    ToolDefinition(
        "cancel_analysis",
        "Request cancellation of an analysis job.",
        CancelAnalysisParams,
        privileged=True,
    ),
]


def get_tool_definitions(allow_write: bool = False) -> List[ToolDefinition]:
    """Manifest order; privileged tools only when ``allow_write`` is set."""
    return [tool for tool in TOOL_DEFINITIONS if allow_write or not tool.privileged]


def find_tool(name: str) -> Optional[ToolDefinition]:
    for tool in TOOL_DEFINITIONS:
        if tool.name == name:
            return tool
    return None


__all__ = [
    "TOOL_DEFINITIONS",
    "ProjectParams",
    "ToolDefinition",
    "ToolParams",
    "find_tool",
    "get_tool_definitions",
]
