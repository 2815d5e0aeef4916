from shared.helper.HelperConfig import HelperConfig

NO_CONTEXT_FOUND = "No relevant context found."
CONTEXT_HEADER = "RELEVANT INFORMATION:\n\n"
TRUNCATION_NOTICE = "\n\n[Additional context truncated to fit token limits]"
SENTENCE_TERMINATORS = ".!?\n"
BREAK_POINT_RATIO = 0.8


class ContextAssembler:
    """Turns vector search hits into a numbered, size-bounded context string."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.max_chars = int(helper_config.get_number_val("CHAT_CONTEXT_MAX_CHARS", default=3000))

    @staticmethod
    def format_results(results: list[str]) -> str:
        """Number the results below the context header. Empty input yields the sentinel."""
        if not results:
            return NO_CONTEXT_FOUND
        parts = [CONTEXT_HEADER]
        for i, content in enumerate(results, start=1):
            parts.append(f"{i}. {content}\n\n")
        return "".join(parts)

    def truncate(self, text: str, max_chars: int | None = None) -> str:
        """Bound text to ``max_chars`` including the truncation notice.

        The cut goes after the last sentence terminator or newline that lies at
        or beyond 80% of the available space; without one the text is hard-cut.
        Text that already fits is returned unchanged.
        """
        budget = self.max_chars if max_chars is None else max_chars
        if len(text) <= budget:
            return text

        space = budget - len(TRUNCATION_NOTICE)
        if space <= 0:
            return text[:budget]

        truncated = text[:space]
        break_point = max(truncated.rfind(ch) for ch in SENTENCE_TERMINATORS)
        if break_point >= space * BREAK_POINT_RATIO:
            truncated = truncated[:break_point + 1]

        self.logging.debug("Context truncated from %d to %d characters.", len(text), len(truncated))
        return truncated + TRUNCATION_NOTICE

    def assemble(self, results: list[str]) -> str:
        """Format and bound the search results. Output length never exceeds the budget."""
        return self.truncate(self.format_results(results))
