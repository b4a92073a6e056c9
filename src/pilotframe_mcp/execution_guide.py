"""Workflow execution guide synthesis.

Turns a WorkflowDefinition plus the personas it references into:
- a markdown guide an agent can follow step by step, and
- a structured representation of the same content.

The work is split in two stages so tests can check the structure without
depending on prose:
1. `build_execution_plan` extracts everything data-derived into a GuidePlan.
2. `render_guide` feeds the plan through an ordered list of section renderers.
Both stages are pure; nothing here talks to the store.
"""
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from pilotframe_core.models import FlowPattern, MergeStrategy, MERGE_STRATEGY_MEANING
from pilotframe_core.schemas import PersonaSpec, WorkflowDefinition

from .naming import NamingStyle, persona_tool_name


# ============================================================================
# Plan (data extraction)
# ============================================================================

class CyclePlan(BaseModel):
    cycle_steps: list[str]
    exit_condition: str
    max_iterations: int


class ParallelPlan(BaseModel):
    parallel_steps: list[str]
    merge_strategy: MergeStrategy
    merge_meaning: str
    description: Optional[str] = None


class BranchPlan(BaseModel):
    condition: str
    target_step: str
    description: Optional[str] = None


class StepPlan(BaseModel):
    step_id: str
    order: int
    persona_id: str
    persona_name: str
    persona_found: bool
    persona_tool: str
    mission: Optional[str] = None
    workflow: list[str] = Field(default_factory=list)
    inputs: list[str] = Field(default_factory=list)
    handoff_expectations: list[str] = Field(default_factory=list)
    condition: Optional[str] = None


class GuidePlan(BaseModel):
    workflow_id: str
    workflow_name: str
    description: Optional[str] = None
    overview: str
    flow_pattern: FlowPattern
    flow_guidance: str
    cycle: Optional[CyclePlan] = None
    parallel: Optional[ParallelPlan] = None
    branches: list[BranchPlan] = Field(default_factory=list)
    steps: list[StepPlan] = Field(default_factory=list)
    success_criteria: Optional[str] = None
    estimated_duration: Optional[str] = None
    tool_naming: NamingStyle = "flat"
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def execution_order(self) -> list[str]:
        return [step.step_id for step in self.steps]


def _overview(workflow: WorkflowDefinition, step_count: int) -> str:
    spec = workflow.execution_spec
    if spec and spec.description:
        return spec.description
    return (
        f"This workflow orchestrates {step_count} personas to accomplish the goal. "
        "Each persona has a specific role and communicates through structured handoffs."
    )


def _flow_guidance(workflow: WorkflowDefinition) -> str:
    spec = workflow.execution_spec
    if spec and spec.execution_guidance:
        return spec.execution_guidance
    if spec and spec.description:
        return spec.description
    return "Execute these steps **in order**. Each step must complete before moving to the next."


def _metadata_text(metadata: dict[str, Any], key: str) -> Optional[str]:
    value = metadata.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, list):
        return "\n".join(f"- {item}" for item in value)
    return str(value)


def build_execution_plan(
    workflow: WorkflowDefinition,
    personas: dict[str, PersonaSpec],
    naming: NamingStyle = "flat",
) -> GuidePlan:
    """Extract every data-derived part of the guide.

    Steps are sorted ascending by `order`; steps sharing an order keep their
    position in the workflow's step list.
    """
    spec = workflow.execution_spec
    ordered = workflow.ordered_steps()

    steps = []
    for step in ordered:
        persona = personas.get(step.persona_id)
        persona_spec = persona.specification if persona else None
        steps.append(StepPlan(
            step_id=step.id,
            order=step.order,
            persona_id=step.persona_id,
            persona_name=persona.name if persona else step.persona_id,
            persona_found=persona is not None,
            persona_tool=persona_tool_name(step.persona_id, naming),
            mission=persona_spec.mission if persona_spec else None,
            workflow=list(persona_spec.workflow) if persona_spec else [],
            inputs=list(persona_spec.inputs) if persona_spec else [],
            handoff_expectations=list(persona_spec.handoff_expectations) if persona_spec else [],
            condition=step.condition or None,
        ))

    cycle = None
    parallel = None
    branches: list[BranchPlan] = []
    if spec:
        if spec.cycle_details:
            cycle = CyclePlan(
                cycle_steps=list(spec.cycle_details.cycle_steps),
                exit_condition=spec.cycle_details.exit_condition,
                max_iterations=spec.cycle_details.max_iterations,
            )
        if spec.parallel_details:
            strategy = spec.parallel_details.merge_strategy
            parallel = ParallelPlan(
                parallel_steps=list(spec.parallel_details.parallel_steps),
                merge_strategy=strategy,
                merge_meaning=MERGE_STRATEGY_MEANING[strategy],
                description=spec.parallel_details.description,
            )
        branches = [
            BranchPlan(condition=b.condition, target_step=b.target_step, description=b.description)
            for b in spec.conditional_branches
        ]

    metadata = dict(workflow.metadata)
    return GuidePlan(
        workflow_id=workflow.id,
        workflow_name=workflow.name,
        description=metadata.get("description") or (spec.description if spec else None),
        overview=_overview(workflow, len(steps)),
        flow_pattern=spec.flow_pattern if spec else FlowPattern.SEQUENTIAL,
        flow_guidance=_flow_guidance(workflow),
        cycle=cycle,
        parallel=parallel,
        branches=branches,
        steps=steps,
        success_criteria=_metadata_text(metadata, "success_criteria"),
        estimated_duration=_metadata_text(metadata, "estimated_duration"),
        tool_naming=naming,
        metadata=metadata,
    )


# ============================================================================
# Rendering
# ============================================================================

def _render_title(plan: GuidePlan) -> str:
    return f"# Workflow: {plan.workflow_name}\n\n## Overview\n\n{plan.overview}\n\n"


def _render_flow(plan: GuidePlan) -> str:
    return (
        "## Execution Flow\n\n"
        f"**Flow Pattern**: {plan.flow_pattern.value}\n\n"
        f"{plan.flow_guidance}\n\n"
    )


def _render_cycle(plan: GuidePlan) -> str:
    if not plan.cycle:
        return ""
    cycle = plan.cycle
    return (
        "### Refinement Cycle\n\n"
        f"This workflow includes a refinement cycle involving: {', '.join(cycle.cycle_steps)}.\n\n"
        f"- **Exit Condition**: {cycle.exit_condition}\n"
        f"- **Max Iterations**: {cycle.max_iterations}\n\n"
        "Continue the cycle until the exit condition is met or max iterations reached.\n\n"
    )


def _render_parallel(plan: GuidePlan) -> str:
    if not plan.parallel:
        return ""
    parallel = plan.parallel
    text = (
        "### Parallel Execution\n\n"
        f"The following steps can execute in parallel: {', '.join(parallel.parallel_steps)}.\n"
        f"- **Merge Strategy**: {parallel.merge_strategy.value} ({parallel.merge_meaning})\n\n"
    )
    if parallel.description:
        text += f"{parallel.description}\n\n"
    return text


def _render_branches(plan: GuidePlan) -> str:
    if not plan.branches:
        return ""
    lines = ["### Conditional Branching", ""]
    for branch in plan.branches:
        line = f"- **If** {branch.condition} **then** go to step: {branch.target_step}"
        if branch.description:
            line += f" ({branch.description})"
        lines.append(line)
    return "\n".join(lines) + "\n\n"


def _render_step(step: StepPlan) -> str:
    text = f"### Step {step.order}: {step.step_id}\n\n"
    if step.persona_found:
        text += f"**Persona**: {step.persona_name} (`{step.persona_id}`)\n\n"
    else:
        text += f"**Persona**: {step.persona_id} (specification not found)\n\n"
    if step.mission:
        text += f"**Purpose**: {step.mission}\n\n"
    text += f"**Tool to Call**: `{step.persona_tool}`\n\n"

    if step.workflow:
        text += "**What This Step Does**:\n"
        text += "".join(f"{i}. {item}\n" for i, item in enumerate(step.workflow, start=1))
        text += "\n"
    if step.inputs:
        text += "**Expected Inputs**:\n"
        text += "".join(f"- {item}\n" for item in step.inputs)
        text += "\n"
    if step.handoff_expectations:
        text += "**Output/Handoff**:\n"
        text += "".join(f"- {item}\n" for item in step.handoff_expectations)
        text += "\n"
    if step.condition:
        text += f"**Step Condition**: {step.condition}\n\n"
        text += (
            "⚠️ **Note**: This step only executes if the condition is met. "
            "Evaluate the condition before proceeding; otherwise skip it.\n\n"
        )
    return text + "---\n\n"


def _render_steps(plan: GuidePlan) -> str:
    text = (
        "## Workflow Steps\n\n"
        "The workflow consists of the following steps. Refer to the execution "
        "specification above for how these steps interact.\n\n"
    )
    return text + "".join(_render_step(step) for step in plan.steps)


def _render_outcomes(plan: GuidePlan) -> str:
    text = ""
    if plan.success_criteria:
        text += f"## Success Criteria\n\n{plan.success_criteria}\n\n"
    if plan.estimated_duration:
        text += f"## Estimated Duration\n\n{plan.estimated_duration}\n\n"
    return text


def _render_how_to(plan: GuidePlan) -> str:
    tool = persona_tool_name("{persona_id}", plan.tool_naming)
    return (
        "## How to Execute This Workflow\n\n"
        "Follow the execution specification described above. The key principles are:\n\n"
        f"1. **Get Persona Specification**: For each step, call `{tool}` with the current context/input.\n"
        "   - This returns detailed instructions on what the persona does and how to work as that persona.\n\n"
        "2. **Execute the Persona's Role**: Follow the specification instructions to complete the step.\n"
        "   - Use the persona's workflow steps, success criteria, and constraints as guidance.\n"
        "   - Work as if you ARE that persona, following their mission and approach.\n\n"
        "3. **Collect Handoff Data**: Gather the output according to the persona's handoff_expectations.\n"
        "   - Structure the output as specified (e.g., JSON object, structured text, etc.).\n"
        "   - Include all required fields mentioned in handoff_expectations.\n\n"
        "4. **Follow Execution Specification**: Use the execution specification (described above) to determine:\n"
        "   - Which step to execute next\n"
        "   - Whether to enter cycles, execute steps in parallel, or follow conditional branches\n"
        "   - When to exit cycles based on exit conditions\n"
        "   - How to merge parallel results\n\n"
        "5. **Map Data Between Steps**: Transform handoff data from one step to match the expected inputs of the next step.\n\n"
        "6. **Final Output**: When the workflow completes (per execution specification), return the final result.\n\n"
        "## Important Notes\n\n"
        f"- Each persona tool (`{tool}`) returns detailed instructions for that persona's role.\n"
        "- Always call the persona tool before executing a step to get the latest specification.\n"
        "- Pass structured data between steps - use the handoff expectations from each step.\n"
        "- The execution specification is the source of truth for how the workflow executes - interpret it intelligently.\n"
    )


# Section renderers in document order; each returns "" when its input is absent
SECTION_RENDERERS: list[Callable[[GuidePlan], str]] = [
    _render_title,
    _render_flow,
    _render_cycle,
    _render_parallel,
    _render_branches,
    _render_steps,
    _render_outcomes,
    _render_how_to,
]


def render_guide(plan: GuidePlan) -> str:
    return "".join(render(plan) for render in SECTION_RENDERERS)


def structured_guide(plan: GuidePlan) -> dict:
    """Machine-readable counterpart of the rendered guide."""
    return {
        "workflow_id": plan.workflow_id,
        "workflow_name": plan.workflow_name,
        "description": plan.description,
        "flow_pattern": plan.flow_pattern.value,
        "steps": [
            {
                "step_id": step.step_id,
                "order": step.order,
                "persona_id": step.persona_id,
                "persona_name": step.persona_name,
                "persona_tool": step.persona_tool,
                "mission": step.mission,
                "inputs": step.inputs,
                "workflow": step.workflow,
                "handoff_expectations": step.handoff_expectations,
                "condition": step.condition,
            }
            for step in plan.steps
        ],
        "execution_order": plan.execution_order,
        "cycle": plan.cycle.model_dump(mode="json") if plan.cycle else None,
        "parallel": plan.parallel.model_dump(mode="json") if plan.parallel else None,
        "conditional_branches": [b.model_dump(mode="json") for b in plan.branches],
        "metadata": plan.metadata,
    }


def synthesize_guide(
    workflow: WorkflowDefinition,
    personas: dict[str, PersonaSpec],
    naming: NamingStyle = "flat",
) -> tuple[str, dict]:
    """Return (guide text, structured guide) for one workflow."""
    plan = build_execution_plan(workflow, personas, naming)
    return render_guide(plan), structured_guide(plan)
