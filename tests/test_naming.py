"""Tests for the tool naming grammar."""
import pytest

from pilotframe_mcp.naming import (
    discovery_tool_name,
    persona_tool_name,
    workflow_tool_name,
    fixed_tool_name,
    strip_client_prefix,
    normalize_tool_name,
)


class TestToolNameSpelling:
    """Test that both spellings are generated from the same ids."""

    def test_flat_names(self):
        """Flat names join namespace, id and action with underscores."""
        assert discovery_tool_name("flat") == "persona_list"
        assert persona_tool_name("writer", "flat") == "persona_writer_get_specification"
        assert workflow_tool_name("loop1", "flat") == "workflow_loop1"
        assert fixed_tool_name("story_update_status", "flat") == "story_update_status"

    def test_hierarchical_names(self):
        """Hierarchical names use dots between namespace, id and action."""
        assert discovery_tool_name("hierarchical") == "persona.list"
        assert persona_tool_name("writer", "hierarchical") == "persona.writer.get_specification"
        assert workflow_tool_name("loop1", "hierarchical") == "workflow.loop1"
        assert fixed_tool_name("story_mark_criteria_complete", "hierarchical") == "story.mark_criteria_complete"
        assert fixed_tool_name("project_get", "hierarchical") == "project.get"


class TestNormalization:
    """Test that every accepted spelling maps to the flat canonical name."""

    @pytest.mark.parametrize("name", [
        "persona.writer.get_specification",
        "persona_writer_get_specification",
        "mcp_pilotframe_persona_writer_get_specification",
        "mcp__pilotframe__persona.writer.get_specification",
        "mcp_persona.writer.get_specification",
    ])
    def test_persona_spellings_normalize_identically(self, name):
        """Prefixed, flat and hierarchical persona names all normalize the same."""
        assert normalize_tool_name(name) == "persona_writer_get_specification"

    def test_persona_id_with_underscores(self):
        """Persona ids may themselves contain underscores."""
        assert normalize_tool_name("persona.seo_writer.get_specification") == "persona_seo_writer_get_specification"

    def test_discovery_and_workflow(self):
        """Discovery and workflow tools normalize to their flat names."""
        assert normalize_tool_name("persona.list") == "persona_list"
        assert normalize_tool_name("workflow.loop1") == "workflow_loop1"
        assert normalize_tool_name("mcp_pilotframe_workflow_loop1") == "workflow_loop1"

    def test_fixed_tools(self):
        """Project and story tools swap only their first dot."""
        assert normalize_tool_name("project.get") == "project_get"
        assert normalize_tool_name("story.update_status") == "story_update_status"
        assert normalize_tool_name("story.list_by_status") == "story_list_by_status"

    def test_unknown_name_is_returned_unchanged(self):
        """A name matching no grammar is only prefix-stripped."""
        assert normalize_tool_name("no.such.tool") == "no.such.tool"
        assert normalize_tool_name("mcp_no.such.tool") == "no.such.tool"

    def test_surrounding_whitespace_is_ignored(self):
        assert normalize_tool_name("  project.list ") == "project_list"


class TestClientPrefixes:
    """Test client prefix stripping."""

    def test_each_prefix_stripped_at_most_once(self):
        """A repeated prefix is only removed once."""
        assert strip_client_prefix("mcp_mcp_project_get") == "mcp_project_get"

    def test_prefixes_applied_in_order(self):
        """The longest bridge prefix is tried first."""
        assert strip_client_prefix("mcp__pilotframe__project_get") == "project_get"
        assert strip_client_prefix("mcp_pilotframe_project_get") == "project_get"

    def test_custom_prefixes(self):
        """Configured prefixes replace the defaults."""
        assert strip_client_prefix("bridge:project_get", ["bridge:"]) == "project_get"
        assert strip_client_prefix("mcp_project_get", []) == "mcp_project_get"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
