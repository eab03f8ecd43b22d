"""Ready-made workflow template definitions.

Each preset is a factory returning a ``WorkflowTemplateDefinition`` for a
given organization, so the same shape can be instantiated per tenant.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from orgflow.storage.entities import (
    ActionType,
    AssigneeType,
    ConditionOperator,
    ConditionSourceType,
    FormFieldType,
)
from orgflow.workflows.builder import WorkflowBuildResult, create_structured_workflow
from orgflow.workflows.definition import (
    ActionDefinition,
    AssigneeRule,
    ConditionDefinition,
    FieldOption,
    FormFieldDefinition,
    StepDefinition,
    TransitionDefinition,
    WorkflowTemplateDefinition,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def standard_document_approval(
    organization_id: str,
    workflow_name: str = "Standard Document Approval",
    approver_role: str = "MANAGER",
    department_id: str | None = None,
) -> WorkflowTemplateDefinition:
    """Two steps: the submitter uploads a document, a role approves it."""
    return WorkflowTemplateDefinition(
        workflow_name=workflow_name,
        description=f"A standard workflow for submitting and approving documents by {approver_role}.",
        organization_id=organization_id,
        department_id=department_id,
        initial_step_name="submit_document",
        steps=[
            StepDefinition(
                step_name="submit_document",
                description="User submits a document for approval.",
                order=1,
                assignee_logic=AssigneeRule(assignee_type=AssigneeType.SUBMITTER),
                form_fields=[
                    FormFieldDefinition(
                        field_name="documentTitle",
                        label="Document Title",
                        field_type=FormFieldType.TEXT,
                        is_required=True,
                        order=1,
                    ),
                    FormFieldDefinition(
                        field_name="documentFile",
                        label="Upload Document",
                        field_type=FormFieldType.FILE_UPLOAD,
                        is_required=True,
                        order=2,
                    ),
                    FormFieldDefinition(
                        field_name="comments",
                        label="Comments (Optional)",
                        field_type=FormFieldType.TEXTAREA,
                        order=3,
                    ),
                ],
                actions=[ActionDefinition(name="submit", label="Submit for Approval", order=1)],
                transitions=[
                    TransitionDefinition(to_step_name="approval_step", action_name="submit")
                ],
            ),
            StepDefinition(
                step_name="approval_step",
                description=f"Document is reviewed by {approver_role}.",
                order=2,
                assignee_logic=AssigneeRule(
                    assignee_type=AssigneeType.SPECIFIC_ROLE,
                    specific_role_id=approver_role,
                ),
                form_fields=[
                    FormFieldDefinition(
                        field_name="approvalComments",
                        label="Approval Comments",
                        field_type=FormFieldType.TEXTAREA,
                        order=1,
                    ),
                    FormFieldDefinition(
                        field_name="decision",
                        label="Decision",
                        field_type=FormFieldType.RADIO_GROUP,
                        is_required=True,
                        order=2,
                        options=[
                            FieldOption(value="approved", label="Approve"),
                            FieldOption(value="rejected", label="Reject"),
                        ],
                    ),
                ],
                actions=[
                    ActionDefinition(name="finalizeApproval", label="Finalize Decision", order=1)
                ],
            ),
        ],
    )


def purchase_request_approval(
    organization_id: str,
    department_id: str | None = None,
) -> WorkflowTemplateDefinition:
    """Purchase request routed through a manager and, under 1000, finance."""
    terminal = AssigneeRule(assignee_type=AssigneeType.UNASSIGNED)

    return WorkflowTemplateDefinition(
        workflow_name="Purchase Request Approval",
        description="Workflow for submitting and approving purchase requests.",
        organization_id=organization_id,
        department_id=department_id,
        initial_step_name="Submit_Request",
        steps=[
            StepDefinition(
                step_name="Submit_Request",
                description="Employee submits a purchase request.",
                order=1,
                assignee_logic=AssigneeRule(assignee_type=AssigneeType.SUBMITTER),
                form_fields=[
                    FormFieldDefinition(
                        field_name="item_description",
                        label="Item Description",
                        field_type=FormFieldType.TEXT,
                        is_required=True,
                        order=1,
                    ),
                    FormFieldDefinition(
                        field_name="estimated_cost",
                        label="Estimated Cost",
                        field_type=FormFieldType.NUMBER,
                        is_required=True,
                        order=2,
                    ),
                ],
                actions=[ActionDefinition(name="submit_request", label="Submit Request", order=1)],
                transitions=[
                    TransitionDefinition(
                        to_step_name="Manager_Review",
                        action_name="submit_request",
                        description="Send to manager for review.",
                        priority=1,
                        is_automatic=True,
                    )
                ],
            ),
            StepDefinition(
                step_name="Manager_Review",
                description="Manager reviews the purchase request.",
                order=2,
                assignee_logic=AssigneeRule(
                    assignee_type=AssigneeType.SPECIFIC_ROLE,
                    specific_role_id="role_department_manager",
                ),
                form_fields=[
                    FormFieldDefinition(
                        field_name="manager_comments",
                        label="Manager Comments",
                        field_type=FormFieldType.TEXTAREA,
                        order=1,
                    ),
                ],
                actions=[
                    ActionDefinition(name="approve", label="Approve", order=1),
                    ActionDefinition(
                        name="reject", label="Reject", action_type=ActionType.SECONDARY, order=2
                    ),
                ],
                transitions=[
                    TransitionDefinition(
                        to_step_name="Finance_Approval",
                        action_name="approve",
                        description="Approved requests go to finance.",
                        priority=1,
                        conditions=[
                            ConditionDefinition(
                                source_type=ConditionSourceType.FORM_FIELD_VALUE,
                                source_field_name="estimated_cost",
                                operator=ConditionOperator.LESS_THAN,
                                comparison_value="1000",
                                value_type=FormFieldType.NUMBER,
                            )
                        ],
                    ),
                    TransitionDefinition(
                        to_step_name="Request_Rejected",
                        action_name="reject",
                        description="Rejected requests end here.",
                        priority=2,
                    ),
                ],
            ),
            StepDefinition(
                step_name="Finance_Approval",
                description="Finance team reviews the request.",
                order=3,
                assignee_logic=AssigneeRule(
                    assignee_type=AssigneeType.SPECIFIC_ROLE,
                    specific_role_id="role_finance_team",
                ),
                actions=[
                    ActionDefinition(name="final_approve", label="Final Approve", order=1),
                    ActionDefinition(
                        name="final_reject",
                        label="Final Reject",
                        action_type=ActionType.SECONDARY,
                        order=2,
                    ),
                ],
                transitions=[
                    TransitionDefinition(
                        to_step_name="Request_Approved",
                        action_name="final_approve",
                        description="Approved by finance.",
                        priority=1,
                    ),
                    TransitionDefinition(
                        to_step_name="Request_Rejected",
                        action_name="final_reject",
                        description="Rejected by finance.",
                        priority=2,
                    ),
                ],
            ),
            StepDefinition(
                step_name="Request_Approved",
                description="Purchase request approved.",
                order=4,
                assignee_logic=terminal,
            ),
            StepDefinition(
                step_name="Request_Rejected",
                description="Purchase request rejected.",
                order=5,
                assignee_logic=terminal,
            ),
        ],
    )


PRESETS: dict[str, Callable[..., WorkflowTemplateDefinition]] = {
    "document-approval": standard_document_approval,
    "purchase-request": purchase_request_approval,
}


def list_presets() -> dict[str, str]:
    """Map each preset name to the first line of its description."""
    return {
        name: (factory.__doc__ or "").strip().split("\n", 1)[0]
        for name, factory in PRESETS.items()
    }


def get_preset(name: str, organization_id: str, **kwargs: Any) -> WorkflowTemplateDefinition:
    """Instantiate the preset called ``name`` for an organization.

    Raises:
        KeyError: If no preset has that name.
    """
    try:
        factory = PRESETS[name]
    except KeyError:
        available = ", ".join(sorted(PRESETS))
        raise KeyError(f"Unknown preset '{name}'. Available: {available}") from None
    return factory(organization_id, **kwargs)


async def create_preset_workflow(
    name: str,
    organization_id: str,
    *,
    session: AsyncSession | None = None,
    **kwargs: Any,
) -> WorkflowBuildResult:
    """Instantiate a preset and build it."""
    definition = get_preset(name, organization_id, **kwargs)
    logger.info("Creating preset workflow '%s' for organization %s", name, organization_id)
    return await create_structured_workflow(definition, session=session)
