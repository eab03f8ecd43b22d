"""orgflow exception hierarchy.

Base exceptions for all application layers with correlation ID support.

Usage:
    from orgflow.exceptions import ValidationError, WorkflowBuildError

    try:
        result = await create_structured_workflow(definition)
    except WorkflowBuildError as e:
        logger.error("Build failed (%s): %s", e.correlation_id, e.__cause__)
"""

import uuid


class OrgflowError(Exception):
    """Base exception for all orgflow application errors.

    Carries a correlation_id for tracing errors across layers.
    """

    def __init__(self, message: str, *, correlation_id: str | None = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(message)


class DALError(OrgflowError):
    """Errors from data access layer operations."""

    pass


class LLMError(OrgflowError):
    """Errors from LLM provider operations."""

    def __init__(self, message: str, *, provider: str | None = None, **kwargs):
        self.provider = provider
        super().__init__(message, **kwargs)


class ConfigurationError(OrgflowError):
    """Errors from application configuration."""

    pass


class ValidationError(OrgflowError):
    """A workflow definition is structurally invalid.

    ``errors`` lists every violation found, each formatted as
    ``"<path>: <message>"``.
    """

    def __init__(self, errors: list[str], *, message: str | None = None, **kwargs):
        self.errors = list(errors)
        if message is None:
            message = f"Workflow definition is invalid: {'; '.join(self.errors)}"
        super().__init__(message, **kwargs)


class WorkflowReferenceError(OrgflowError):
    """A document-scoped name could not be resolved to a persisted identity."""

    pass


class InitialStepNotFoundError(WorkflowReferenceError):
    """The definition's initial step name matches no materialized step."""

    def __init__(self, step_name: str, **kwargs):
        self.step_name = step_name
        super().__init__(
            f'Initial step named "{step_name}" not found in step definitions.', **kwargs
        )


class UnresolvedTransitionError(WorkflowReferenceError):
    """A transition points at an unknown step or action (strict builds only)."""

    def __init__(
        self,
        from_step: str,
        to_step: str,
        *,
        action_name: str | None = None,
        reason: str,
        **kwargs,
    ):
        self.from_step = from_step
        self.to_step = to_step
        self.action_name = action_name
        self.reason = reason
        super().__init__(
            f'Transition from "{from_step}" to "{to_step}" cannot be linked: {reason}',
            **kwargs,
        )


class WorkflowBuildError(OrgflowError):
    """Building a workflow graph failed.

    The underlying cause is chained as ``__cause__``.
    """

    def __init__(self, workflow_name: str, reason: str, **kwargs):
        self.workflow_name = workflow_name
        self.reason = reason
        super().__init__(
            f'Could not create structured workflow "{workflow_name}": {reason}', **kwargs
        )
