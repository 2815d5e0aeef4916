"""System prompt assembly under a character budget.

The prompt is a list of named sections. Each carries a priority (which
section keeps its space when the budget is short) and a write position (where
it appears in the prompt). When the full prompt does not fit, a single-pass
allocator walks the sections by priority:

  1. core sections (persona, identity, tools, guidelines), each reserving the
     minimal size of the core sections still to come; tools collapse to a
     one-line name list before being hard-truncated,
  2. standing instructions, included whole or dropped,
  3. retrieved context, clipped to the remaining space, but only when more
     than 200 characters remain.
"""

from enum import Enum

from pydantic import BaseModel

from services.rag.ContextAssembler import NO_CONTEXT_FOUND
from shared.helper.HelperConfig import HelperConfig
from shared.models.owner import Owner

SECTION_SEPARATOR = "\n\n"
ELLIPSIS = "..."
MIN_CONTEXT_CHARS = 200
OPTIMIZED_NOTICE_RATIO = 0.9
OPTIMIZED_NOTICE = "[System prompt optimized for token limits]"
CONTEXT_TRUNCATED_FLAG = "\n[Context truncated]"

PERSONA = (
    "You are an AI assistant for financial advisors. You help manage client relationships, "
    "schedule appointments, and answer questions about clients based on email and CRM data."
)
IDENTITY_HEADER = "USER INFORMATION:"
TOOLS_HEADER = "AVAILABLE TOOLS:"
CONTEXT_HEADER = "RELEVANT CONTEXT FROM YOUR DATA:"
INSTRUCTIONS_HEADER = "ONGOING INSTRUCTIONS:\nRemember these ongoing instructions for all interactions:"
GUIDELINES = "\n".join([
    "GUIDELINES:",
    "- Be helpful, professional, and proactive",
    "- Use the relevant context to provide specific, personalized responses",
    "- When scheduling appointments or managing contacts, use the available tools",
    "- Always confirm actions taken with the user",
    "- If you mention specific people or events, use the context provided",
    "- For questions about clients, refer to the relevant context from emails and CRM data",
])


class SectionPolicy(str, Enum):
    HARD_TRUNCATE = "hard_truncate"
    COLLAPSE = "collapse"
    WHOLE_OR_DROP = "whole_or_drop"
    CLIP_OR_DROP = "clip_or_drop"


class PromptSection(BaseModel):
    """
    One named block of the system prompt.

    Attributes:
        name (str): Section name, e.g. "persona".
        priority (int): Allocation order, 1 is allocated first.
        position (int): Write order within the prompt.
        core (bool): Core sections are always present, possibly truncated.
        policy (SectionPolicy): How the section shrinks when space is short.
        text (str): Full section text including its header.
        header (str): Header line kept when the body is clipped.
        abbreviated (str | None): Collapsed form, used by the COLLAPSE policy.
    """

    name: str
    priority: int
    position: int
    core: bool
    policy: SectionPolicy
    text: str
    header: str = ""
    abbreviated: str | None = None

    @property
    def minimal_size(self) -> int:
        """Characters a core section needs to appear without truncation in its smallest form."""
        if self.policy == SectionPolicy.COLLAPSE and self.abbreviated is not None:
            return len(self.abbreviated)
        return len(self.text)


def _hard_truncate(text: str, space: int) -> str:
    if len(text) <= space:
        return text
    if space <= len(ELLIPSIS):
        return ""
    return text[:space - len(ELLIPSIS)] + ELLIPSIS


class PromptBuilder:
    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.max_chars = int(helper_config.get_number_val("CHAT_PROMPT_MAX_CHARS", default=2500))

    ##########################################
    ############### SECTIONS #################
    ##########################################

    def build_sections(
        self,
        persona: str,
        identity: Owner,
        tool_lines: list[str],
        tool_names: list[str],
        context: str | None = None,
        instructions: str | None = None,
    ) -> list[PromptSection]:
        """Return the sections of a prompt in write order. Empty optional sections are omitted."""
        tools_body = "\n".join(tool_lines)
        sections = [
            PromptSection(name="persona", priority=1, position=1, core=True, policy=SectionPolicy.HARD_TRUNCATE, text=persona),
            PromptSection(
                name="identity", priority=2, position=2, core=True, policy=SectionPolicy.HARD_TRUNCATE,
                text=f"{IDENTITY_HEADER}\n- Name: {identity.name}\n- Email: {identity.email}",
            ),
            PromptSection(
                name="tools", priority=3, position=3, core=True, policy=SectionPolicy.COLLAPSE,
                text=f"{TOOLS_HEADER}\n{tools_body}" if tools_body else TOOLS_HEADER,
                abbreviated=f"{TOOLS_HEADER}\n- {', '.join(tool_names)}" if tool_names else TOOLS_HEADER,
            ),
        ]
        if context and context.strip() and context.strip() != NO_CONTEXT_FOUND:
            sections.append(PromptSection(
                name="context", priority=5, position=4, core=False, policy=SectionPolicy.CLIP_OR_DROP,
                text=f"{CONTEXT_HEADER}\n{context.strip()}", header=CONTEXT_HEADER,
            ))
        if instructions and instructions.strip():
            sections.append(PromptSection(
                name="instructions", priority=4, position=5, core=False, policy=SectionPolicy.WHOLE_OR_DROP,
                text=f"{INSTRUCTIONS_HEADER}\n{instructions.strip()}", header=INSTRUCTIONS_HEADER,
            ))
        sections.append(PromptSection(name="guidelines", priority=6, position=6, core=True, policy=SectionPolicy.HARD_TRUNCATE, text=GUIDELINES))
        return sections

    ##########################################
    ############### ALLOCATOR ################
    ##########################################

    def allocate(self, sections: list[PromptSection], budget: int) -> dict[str, str]:
        """Decide the text of every section so that the joined prompt fits ``budget``.

        Every included section costs its length plus one separator; the capacity
        is raised by one separator because n sections need only n - 1 of them.

        Returns:
            dict[str, str]: Section name to allocated text. Dropped sections are absent.
        """
        sep = len(SECTION_SEPARATOR)
        remaining = max(budget, 0) + sep
        allocated: dict[str, str] = {}

        core = sorted((s for s in sections if s.core), key=lambda s: s.priority)
        for i, section in enumerate(core):
            reserved = sum(later.minimal_size + sep for later in core[i + 1:])
            space = remaining - reserved - sep
            if space <= 0:
                self.logging.warning("No space left for prompt section '%s'.", section.name)
                continue

            if len(section.text) <= space:
                text = section.text
            elif section.policy == SectionPolicy.COLLAPSE and section.abbreviated is not None:
                text = _hard_truncate(section.abbreviated, space)
            else:
                text = _hard_truncate(section.text, space)

            if text:
                allocated[section.name] = text
                remaining -= len(text) + sep

        optional = sorted((s for s in sections if not s.core), key=lambda s: s.priority)
        for section in optional:
            space = remaining - sep
            if len(section.text) <= space:
                allocated[section.name] = section.text
                remaining -= len(section.text) + sep
            elif section.policy == SectionPolicy.CLIP_OR_DROP and space > MIN_CONTEXT_CHARS:
                body_space = space - len(section.header) - 1 - len(CONTEXT_TRUNCATED_FLAG)
                body = section.text[len(section.header) + 1:]
                text = f"{section.header}\n{body[:max(body_space, 0)]}{CONTEXT_TRUNCATED_FLAG}"
                allocated[section.name] = text
                remaining -= len(text) + sep
            else:
                self.logging.debug("Dropping prompt section '%s' (%d chars, %d available).", section.name, len(section.text), space)

        return allocated

    ##########################################
    ################ BUILD ###################
    ##########################################

    def build(
        self,
        persona: str,
        identity: Owner,
        tool_lines: list[str],
        tool_names: list[str],
        context: str | None = None,
        instructions: str | None = None,
    ) -> str:
        """Assemble the system prompt within CHAT_PROMPT_MAX_CHARS.

        Args:
            persona (str): Persona statement.
            identity (Owner): Owner written into the USER INFORMATION section.
            tool_lines (list[str]): One descriptive line per tool.
            tool_names (list[str]): Tool names for the collapsed tool list.
            context (str | None): Assembled retrieval context. The
                "No relevant context found." sentinel is never written.
            instructions (str | None): Standing instructions of the owner.

        Returns:
            str: The prompt. Its length never exceeds the budget.
        """
        sections = self.build_sections(persona, identity, tool_lines, tool_names, context, instructions)
        ordered = sorted(sections, key=lambda s: s.position)

        full = SECTION_SEPARATOR.join(s.text for s in ordered)
        if len(full) <= self.max_chars:
            return full

        notice_cost = len(SECTION_SEPARATOR) + len(OPTIMIZED_NOTICE)
        allocated = self.allocate(sections, self.max_chars - notice_cost)
        prompt = SECTION_SEPARATOR.join(allocated[s.name] for s in ordered if s.name in allocated)

        if len(prompt) >= self.max_chars * OPTIMIZED_NOTICE_RATIO:
            prompt = f"{prompt}{SECTION_SEPARATOR}{OPTIMIZED_NOTICE}"

        self.logging.info(
            "System prompt optimized from %d to %d characters (dropped: %s).",
            len(full),
            len(prompt),
            ", ".join(s.name for s in ordered if s.name not in allocated) or "none",
        )
        return prompt
