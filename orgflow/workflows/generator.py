"""Natural-language workflow generation.

Asks a chat model to turn a free-text description ("document approval
for the legal team, reviewed by counsel then senior counsel") into a
``WorkflowTemplateDefinition``, then hands it to the builder.  Model
output is untrusted: it is parsed, pinned to the caller's organization
and validated exactly like an API body.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from langchain_core.messages import HumanMessage, SystemMessage

from orgflow.exceptions import LLMError
from orgflow.storage.entities import (
    ActionType,
    AssigneeType,
    ConditionOperator,
    ConditionSourceType,
    FormFieldType,
    WorkflowTriggerType,
)
from orgflow.workflows.builder import WorkflowBuildResult, create_structured_workflow
from orgflow.workflows.validator import validate_definition

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel
    from sqlalchemy.ext.asyncio import AsyncSession

    from orgflow.workflows.definition import WorkflowTemplateDefinition

logger = logging.getLogger(__name__)


def _choices(enum_cls: Any) -> str:
    return " | ".join(member.value for member in enum_cls)


def build_generation_prompt(organization_id: str, department_id: str | None = None) -> str:
    """Build the system prompt describing the definition JSON contract."""
    department = json.dumps(department_id)
    return f"""You design structured business workflow templates.
Convert the user's description of a workflow into ONE JSON object with this shape:

{{
  "workflowName": "string, descriptive name",
  "description": "string, optional summary",
  "organizationId": "{organization_id}",
  "departmentId": {department},
  "triggerType": "{_choices(WorkflowTriggerType)}" (default MANUAL),
  "initialStepName": "string, equal to one stepName below",
  "steps": [
    {{
      "stepName": "string, unique in this workflow (e.g. draft_request)",
      "description": "string, optional",
      "order": integer (1, 2, 3...),
      "assigneeLogic": {{
        "assigneeType": "{_choices(AssigneeType)}",
        "specificRoleId": "string, required for SPECIFIC_ROLE (e.g. MANAGER)",
        "specificMemberId": "string, required for SPECIFIC_MEMBER"
      }},
      "formFields": [
        {{
          "fieldName": "camelCase string (e.g. documentTitle)",
          "label": "string",
          "fieldType": "{_choices(FormFieldType)}",
          "isRequired": boolean,
          "placeholder": "string, optional",
          "defaultValue": "string, optional",
          "options": [{{"value": "string", "label": "string"}}] (only for DROPDOWN, RADIO_GROUP, CHECKBOX_GROUP),
          "validationRules": {{}} (optional, e.g. {{"minLength": 5}}),
          "order": integer
        }}
      ],
      "actions": [
        {{
          "name": "camelCase string (e.g. submitForApproval)",
          "label": "string",
          "actionType": "{_choices(ActionType)}" (default PRIMARY),
          "order": integer
        }}
      ],
      "transitions": [
        {{
          "toStepName": "string, another stepName of this workflow",
          "actionName": "string, optional, an action name of THIS step",
          "description": "string, optional",
          "priority": integer (default 0),
          "isAutomatic": boolean (default false),
          "conditions": [
            {{
              "sourceType": "{_choices(ConditionSourceType)}",
              "sourceFieldName": "string (a formFields fieldName for FORM_FIELD_VALUE)",
              "operator": "{_choices(ConditionOperator)}",
              "comparisonValue": "string",
              "valueType": "{_choices(FormFieldType)}"
            }}
          ]
        }}
      ]
    }}
  ]
}}

Guidelines:
1. Keep organizationId and departmentId exactly as given above.
2. Every stepName is unique; initialStepName names one of them.
3. fieldName and action names are camelCase.
4. A transition's actionName may only name an action declared on the same step.
5. The flow goes from the initial step to one or more terminal steps (steps without transitions).
6. Use roles mentioned by the user for specificRoleId; otherwise use generic roles such as MEMBER, MANAGER or DEPARTMENT_HEAD.
7. Boolean comparison values are the strings "true" or "false".
8. If the request is vague, produce a simple 2-3 step workflow (e.g. Submit -> Review -> Complete).
9. Use enum values exactly as listed.

Respond with the JSON object only, no prose and no markdown."""


def extract_json(text: str) -> dict[str, Any]:
    """Extract a JSON object from LLM response text.

    Tries direct parse, then looks for fenced JSON blocks,
    then falls back to the first ``{...}`` substring.

    Raises:
        LLMError: If no JSON object can be recovered.
    """
    candidates = [text]

    match = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if match:
        candidates.append(match.group(1))

    match = re.search(r"\{.*\}", text, re.DOTALL)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    raise LLMError("Model response did not contain a JSON object")


async def generate_workflow_definition(
    prompt: str,
    organization_id: str,
    department_id: str | None = None,
    *,
    llm: BaseChatModel | None = None,
) -> WorkflowTemplateDefinition:
    """Ask the chat model for a workflow definition and validate it.

    Args:
        prompt: Free-text description of the desired workflow
        organization_id: Organization the workflow belongs to
        department_id: Optional owning department
        llm: Chat model to use (defaults to ``orgflow.llm.get_llm()``)

    Returns:
        The validated definition.

    Raises:
        LLMError: The model call failed or returned no JSON object.
        ValidationError: The returned definition is invalid.
    """
    if llm is None:
        from orgflow.llm import get_llm

        llm = get_llm()

    messages = [
        SystemMessage(content=build_generation_prompt(organization_id, department_id)),
        HumanMessage(content=prompt),
    ]

    logger.info("Generating workflow definition for organization %s", organization_id)
    try:
        response = await llm.ainvoke(messages)
    except Exception as e:
        raise LLMError(f"Workflow generation request failed: {e}") from e

    data = extract_json(str(response.content))

    # Ownership comes from the caller, never from the model.
    data["organizationId"] = organization_id
    data["departmentId"] = department_id
    data.pop("organization_id", None)
    data.pop("department_id", None)

    definition = validate_definition(data)
    logger.info(
        "Model proposed workflow '%s' with %d steps",
        definition.workflow_name,
        len(definition.steps),
    )
    return definition


async def generate_and_create_workflow(
    prompt: str,
    organization_id: str,
    department_id: str | None = None,
    *,
    llm: BaseChatModel | None = None,
    session: AsyncSession | None = None,
) -> WorkflowBuildResult:
    """Generate a definition from ``prompt`` and build it."""
    definition = await generate_workflow_definition(
        prompt, organization_id, department_id, llm=llm
    )
    return await create_structured_workflow(definition, session=session)
