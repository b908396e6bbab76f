"""Exceptions raised by the workflow converter."""

from typing import Dict, List, Optional


class ConverterError(Exception):
    """Base class for converter errors."""
    pass


class MalformedWorkflowError(ConverterError, ValueError):
    """Raised when a workflow document does not have the expected shape.

    This is not attributable to a single node and aborts the whole mapping
    call. Per-node problems are reported as validation diagnostics instead.
    """
    pass


class RegistryError(ConverterError):
    """Raised when a node registry is constructed from inconsistent descriptors."""
    pass


class TemplateRenderError(ConverterError):
    """Raised when a node template fails to render.

    Templates never fail for parameters that passed validation, so this
    points at a descriptor/template mismatch in the registry rather than at
    the user's workflow.
    """

    def __init__(self, node_id: str, type_id: str, cause: Optional[BaseException] = None):
        self.node_id = node_id
        self.type_id = type_id
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Template for node '{node_id}' ({type_id}) failed to render{detail}")


class CodeGenerationError(ConverterError):
    """Raised after a generation pass in which one or more nodes failed."""

    def __init__(self, failures: List[TemplateRenderError], implementations: Dict[str, str]):
        self.failures = failures
        self.implementations = implementations
        failed = ", ".join(f.node_id for f in failures)
        super().__init__(f"Code generation failed for {len(failures)} node(s): {failed}")
