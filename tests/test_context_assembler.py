from conftest import make_helper_config
from services.rag.ContextAssembler import CONTEXT_HEADER, NO_CONTEXT_FOUND, TRUNCATION_NOTICE, ContextAssembler


def test_empty_results_yield_sentinel():
    assembler = ContextAssembler(helper_config=make_helper_config())
    assert assembler.assemble([]) == NO_CONTEXT_FOUND


def test_results_are_numbered_below_header():
    assembler = ContextAssembler(helper_config=make_helper_config())
    context = assembler.assemble(["Email from Bob.", "Contact: Alice."])
    assert context.startswith(CONTEXT_HEADER)
    assert "1. Email from Bob.\n\n" in context
    assert "2. Contact: Alice.\n\n" in context


def test_context_within_budget_is_unmodified():
    assembler = ContextAssembler(helper_config=make_helper_config())
    results = ["short piece of context"] * 3
    assert assembler.assemble(results) == ContextAssembler.format_results(results)
    assert TRUNCATION_NOTICE not in assembler.assemble(results)


def test_long_context_is_bounded_and_marked():
    assembler = ContextAssembler(helper_config=make_helper_config(CHAT_CONTEXT_MAX_CHARS=300))
    results = [f"Sentence number {i} about a client meeting." for i in range(40)]
    context = assembler.assemble(results)
    assert len(context) <= 300
    assert context.endswith(TRUNCATION_NOTICE)


def test_truncation_prefers_sentence_boundary():
    assembler = ContextAssembler(helper_config=make_helper_config())
    text = "A" * 150 + ". " + "B" * 200
    budget = 150 + len(TRUNCATION_NOTICE) + 20
    truncated = assembler.truncate(text, max_chars=budget)
    assert truncated == "A" * 150 + "." + TRUNCATION_NOTICE


def test_truncation_without_boundary_hard_cuts():
    assembler = ContextAssembler(helper_config=make_helper_config())
    text = "x" * 500
    budget = 100 + len(TRUNCATION_NOTICE)
    assert assembler.truncate(text, max_chars=budget) == "x" * 100 + TRUNCATION_NOTICE
