# Function tooling package
from .errors import (
    ErrorCategory, ErrorCode, ToolkitError,
    FunctionNotFoundError, AssistantNotFoundError, InvalidModuleError,
    DependencyInstallError, FunctionExecutionError, CreationFailedError,
    RunServiceError, RunTimeoutError,
    tool_failure, tool_success,
)
from .schema import ToolSchema, FunctionSpec, FunctionParameters, FunctionDescriptor
from .registry import FunctionRegistry
from .dependencies import DependencyResolver, PackageInstaller, scan_imports
from .loader import FunctionLoader
from .author import FunctionAuthor

__all__ = [
    "ErrorCategory", "ErrorCode", "ToolkitError",
    "FunctionNotFoundError", "AssistantNotFoundError", "InvalidModuleError",
    "DependencyInstallError", "FunctionExecutionError", "CreationFailedError",
    "RunServiceError", "RunTimeoutError",
    "tool_failure", "tool_success",
    "ToolSchema", "FunctionSpec", "FunctionParameters", "FunctionDescriptor",
    "FunctionRegistry",
    "DependencyResolver", "PackageInstaller", "scan_imports",
    "FunctionLoader",
    "FunctionAuthor",
]
