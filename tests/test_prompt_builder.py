from conftest import make_helper_config
from services.chat.PromptBuilder import (
    GUIDELINES,
    OPTIMIZED_NOTICE,
    PERSONA,
    TOOLS_HEADER,
    PromptBuilder,
    SectionPolicy,
)
from services.chat.ToolExecutor import ToolExecutor
from services.chat.WorkspaceTools import WorkspaceTools
from shared.models.owner import Owner

OWNER = Owner(id="advisor-1", name="Jane Advisor", email="jane@example.com")


def _tool_catalog():
    helper_config = make_helper_config()
    executor = ToolExecutor(helper_config=helper_config)
    WorkspaceTools(helper_config=helper_config).register_all(executor)
    return executor.describe_tools(), executor.get_tool_names()


def test_prompt_within_budget_is_written_in_position_order():
    tool_lines, tool_names = _tool_catalog()
    builder = PromptBuilder(helper_config=make_helper_config())
    prompt = builder.build(PERSONA, OWNER, tool_lines, tool_names, context="1. Bob likes bonds.", instructions="Always reply in English.")

    assert len(prompt) <= 2500
    assert prompt.startswith(PERSONA)
    assert prompt.endswith(GUIDELINES)
    assert prompt.index("USER INFORMATION:") < prompt.index(TOOLS_HEADER)
    assert prompt.index(TOOLS_HEADER) < prompt.index("RELEVANT CONTEXT FROM YOUR DATA:")
    assert prompt.index("RELEVANT CONTEXT FROM YOUR DATA:") < prompt.index("ONGOING INSTRUCTIONS:")
    assert "- sendEmail(to, subject, body): Send emails to clients" in prompt
    assert OPTIMIZED_NOTICE not in prompt


def test_no_context_sentinel_is_not_written():
    tool_lines, tool_names = _tool_catalog()
    builder = PromptBuilder(helper_config=make_helper_config())
    prompt = builder.build(PERSONA, OWNER, tool_lines, tool_names, context="No relevant context found.")
    assert "RELEVANT CONTEXT" not in prompt


def test_small_budget_keeps_core_sections_and_drops_optional_ones():
    tool_lines, tool_names = _tool_catalog()
    builder = PromptBuilder(helper_config=make_helper_config(CHAT_PROMPT_MAX_CHARS=1000))
    context = "1. " + "Client portfolio details. " * 100
    instructions = "When someone emails me who is not in the CRM, create a contact for them. " * 3
    prompt = builder.build(PERSONA, OWNER, tool_lines, tool_names, context=context, instructions=instructions)

    assert len(prompt) <= 1000
    assert PERSONA in prompt
    assert "- Name: Jane Advisor\n- Email: jane@example.com" in prompt
    assert f"{TOOLS_HEADER}\n- {', '.join(tool_names)}" in prompt
    assert GUIDELINES in prompt
    assert "Client portfolio details" not in prompt
    assert "create a contact" not in prompt


def test_tight_budget_clips_context_but_keeps_instructions():
    tool_lines, tool_names = _tool_catalog()
    builder = PromptBuilder(helper_config=make_helper_config(CHAT_PROMPT_MAX_CHARS=2000))
    context = "1. " + "Client portfolio details. " * 100
    prompt = builder.build(PERSONA, OWNER, tool_lines, tool_names, context=context, instructions="Be brief.")

    assert len(prompt) <= 2000
    assert "Be brief." in prompt
    assert "[Context truncated]" in prompt
    assert prompt.endswith(OPTIMIZED_NOTICE)


def test_tools_section_collapses_to_name_list():
    tool_lines, tool_names = _tool_catalog()
    builder = PromptBuilder(helper_config=make_helper_config())
    sections = builder.build_sections(PERSONA, OWNER, tool_lines, tool_names)
    tools = next(s for s in sections if s.name == "tools")
    assert tools.policy == SectionPolicy.COLLAPSE
    assert tools.minimal_size == len(tools.abbreviated) < len(tools.text)
