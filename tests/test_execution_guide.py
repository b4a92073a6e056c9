"""Tests for workflow execution guide synthesis."""
import pytest

from pilotframe_core.schemas import PersonaSpec, WorkflowDefinition
from pilotframe_mcp.execution_guide import build_execution_plan, render_guide, synthesize_guide

from conftest import PERSONAS, WORKFLOWS


def _personas(*ids):
    return {p["id"]: PersonaSpec.model_validate(p) for p in PERSONAS if p["id"] in ids}


def _workflow(workflow_id):
    return WorkflowDefinition.model_validate(next(w for w in WORKFLOWS if w["id"] == workflow_id))


class TestStepOrdering:
    """Test that steps are rendered in ascending order."""

    def test_loop_steps_sorted_by_order(self):
        """s2 (order 1) renders before s1 (order 2) in text and structure."""
        text, structured = synthesize_guide(_workflow("loop1"), _personas("writer", "reviewer"))

        assert structured["execution_order"] == ["s2", "s1"]
        assert [s["step_id"] for s in structured["steps"]] == ["s2", "s1"]
        assert text.index("### Step 1: s2") < text.index("### Step 2: s1")

    def test_ties_keep_array_order(self):
        """Steps sharing an order keep their position in the step list."""
        plan = build_execution_plan(_workflow("launch"), _personas("writer", "reviewer"))

        assert plan.execution_order == ["draft", "review", "legal"]

    def test_execution_order_matches_rendered_order(self):
        """The structured order is exactly the order of step headings."""
        text, structured = synthesize_guide(_workflow("launch"), _personas("writer", "reviewer"))
        positions = [text.index(f": {step_id}\n") for step_id in structured["execution_order"]]

        assert positions == sorted(positions)


class TestCycleSection:
    """Test the refinement cycle section."""

    def test_default_max_iterations(self):
        """Omitted max_iterations renders as 10."""
        text, structured = synthesize_guide(_workflow("loop1"), _personas("writer", "reviewer"))

        assert "### Refinement Cycle" in text
        assert "- **Max Iterations**: 10" in text
        assert "- **Exit Condition**: score>0.8" in text
        assert structured["cycle"]["max_iterations"] == 10

    def test_null_details_use_defaults(self):
        """Stored nulls for max_iterations and merge_strategy fall back to 10 and all."""
        workflow = WorkflowDefinition.model_validate({
            "id": "nulls",
            "name": "Stored Nulls",
            "steps": [
                {"id": "a", "persona_id": "writer", "order": 1},
                {"id": "b", "persona_id": "reviewer", "order": 2},
            ],
            "execution_spec": {
                "flow_pattern": "mixed",
                "cycle_details": {"cycle_steps": ["a", "b"], "exit_condition": None, "max_iterations": None},
                "parallel_details": {"parallel_steps": ["a", "b"], "merge_strategy": None},
            },
        })
        text, structured = synthesize_guide(workflow, _personas("writer", "reviewer"))

        assert "- **Max Iterations**: 10" in text
        assert "- **Merge Strategy**: all (wait for all)" in text
        assert structured["cycle"]["max_iterations"] == 10
        assert structured["parallel"]["merge_strategy"] == "all"

    def test_no_cycle_section_without_details(self):
        text, structured = synthesize_guide(_workflow("launch"), _personas("writer", "reviewer"))

        assert "Refinement Cycle" not in text
        assert structured["cycle"] is None


class TestParallelAndBranches:
    """Test parallel and conditional sections."""

    def test_parallel_section(self):
        """Merge strategy is shown with its meaning and description."""
        text, structured = synthesize_guide(_workflow("launch"), _personas("writer", "reviewer"))

        assert "### Parallel Execution" in text
        assert "- **Merge Strategy**: majority (consensus)" in text
        assert "Both reviewers see the same draft." in text
        assert structured["parallel"]["merge_strategy"] == "majority"

    def test_default_merge_strategy(self):
        """Parallel details without a strategy wait for all."""
        workflow = WorkflowDefinition.model_validate({
            "id": "fan",
            "name": "Fan Out",
            "steps": [{"id": "a", "persona_id": "writer", "order": 1}],
            "execution_spec": {"flow_pattern": "parallel", "parallel_details": {"parallel_steps": ["a"]}},
        })
        text = render_guide(build_execution_plan(workflow, _personas("writer")))

        assert "- **Merge Strategy**: all (wait for all)" in text

    def test_conditional_branches(self):
        """Each branch renders as an if/then bullet."""
        text, _ = synthesize_guide(_workflow("launch"), _personas("writer", "reviewer"))

        assert "### Conditional Branching" in text
        assert "- **If** legal rejects **then** go to step: draft (rewrite)" in text


class TestStepSections:
    """Test the per-step sections."""

    def test_persona_details_rendered(self):
        """Mission, workflow, inputs and handoff of the persona are listed."""
        text, structured = synthesize_guide(_workflow("loop1"), _personas("writer", "reviewer"))

        assert "**Persona**: Content Writer (`writer`)" in text
        assert "**Purpose**: Draft clear, accurate articles" in text
        assert "**Tool to Call**: `persona_writer_get_specification`" in text
        assert "1. Read the brief\n2. Outline the article\n3. Write the draft\n" in text
        assert "- keywords\n" in text
        assert "- draft: markdown text\n" in text
        assert structured["steps"][1]["persona_tool"] == "persona_writer_get_specification"

    def test_missing_persona_still_rendered(self):
        """A step whose persona is unknown keeps its tool name."""
        text, structured = synthesize_guide(_workflow("launch"), _personas("writer", "reviewer"))

        assert "**Persona**: ghost (specification not found)" in text
        assert "`persona_ghost_get_specification`" in text
        assert structured["steps"][2]["persona_name"] == "ghost"

    def test_conditional_step_warning(self):
        """A step with a condition carries an explicit skip warning."""
        text, structured = synthesize_guide(_workflow("launch"), _personas("writer", "reviewer"))

        assert "**Step Condition**: regulated market" in text
        assert text.count("⚠️ **Note**") == 1
        assert structured["steps"][2]["condition"] == "regulated market"

    def test_hierarchical_tool_names(self):
        """Persona tools are named in the requested spelling."""
        text, structured = synthesize_guide(_workflow("loop1"), _personas("writer", "reviewer"), "hierarchical")

        assert "`persona.writer.get_specification`" in text
        assert "`persona.{persona_id}.get_specification`" in text
        assert structured["steps"][0]["persona_tool"] == "persona.reviewer.get_specification"


class TestGuideStructure:
    """Test section order and fallbacks."""

    def test_section_order(self):
        """Sections appear in their fixed order."""
        text, _ = synthesize_guide(_workflow("launch"), _personas("writer", "reviewer"))
        headings = [
            "# Workflow: Launch Campaign",
            "## Execution Flow",
            "### Parallel Execution",
            "### Conditional Branching",
            "## Workflow Steps",
            "## Success Criteria",
            "## Estimated Duration",
            "## How to Execute This Workflow",
            "## Important Notes",
        ]
        positions = [text.index(h) for h in headings]

        assert positions == sorted(positions)

    def test_metadata_outcomes(self):
        """Success criteria lists and duration come from workflow metadata."""
        text, structured = synthesize_guide(_workflow("launch"), _personas("writer", "reviewer"))

        assert "## Success Criteria\n\n- Approved by review\n- Cleared by legal\n" in text
        assert "## Estimated Duration\n\n2 days\n" in text
        assert structured["metadata"]["estimated_duration"] == "2 days"

    def test_fallbacks_without_execution_spec(self):
        """A bare workflow gets a generic overview and sequential guidance."""
        workflow = WorkflowDefinition.model_validate({
            "id": "plain",
            "name": "Plain",
            "steps": [
                {"id": "a", "persona_id": "writer", "order": 1},
                {"id": "b", "persona_id": "reviewer", "order": 2},
            ],
        })
        text, structured = synthesize_guide(workflow, _personas("writer", "reviewer"))

        assert "This workflow orchestrates 2 personas" in text
        assert "**Flow Pattern**: sequential" in text
        assert "Execute these steps **in order**." in text
        assert structured["flow_pattern"] == "sequential"
        assert structured["conditional_branches"] == []

    def test_execution_guidance_preferred_over_description(self):
        text, _ = synthesize_guide(_workflow("launch"), _personas("writer", "reviewer"))

        assert "Draft once, then run review and legal side by side." in text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
