"""Tests for suggestion generation."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from sortora.organization import (
    Executor,
    SkippedFile,
    SkipReason,
    Suggester,
    Suggestion,
    SuggestionMode,
    SuggestOptions,
    filter_suggestions,
    group_by_action,
    group_by_destination,
)
from sortora.rules import ActionKind
from sortora.state import StateRepository


def _move(name: str, template: str, priority: int = 50, **match) -> dict:
    return {"name": name, "priority": priority, "match": match, "action": {"move_to": template}}


def test_screenshot_preset_moves_into_dated_folder(make_context, make_file, tmp_path: Path) -> None:
    context = make_context(presets=True, use_global_destinations=True)
    file = make_file(
        "Screenshot 2024-01-01.png", created_at=datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    )

    suggestion = Suggester(context).suggest(file)

    assert isinstance(suggestion, Suggestion)
    assert suggestion.rule_name == "Screenshots"
    assert suggestion.action is ActionKind.MOVE
    assert suggestion.destination == (
        tmp_path / "Pictures" / "Screenshots" / "2024-01" / "Screenshot 2024-01-01.png"
    )
    assert suggestion.confidence == 1.0
    assert suggestion.mode is SuggestionMode.AUTO
    assert not suggestion.requires_confirmation


def test_local_mode_uses_local_destination(make_context, make_file, tmp_path: Path) -> None:
    context = make_context(presets=True)
    downloads = tmp_path / "Downloads"
    file = make_file("Screenshot 2.png", directory=downloads)

    suggestion = Suggester(context).suggest(file, SuggestOptions(base_dir=downloads))

    assert isinstance(suggestion, Suggestion)
    assert suggestion.destination == downloads / "Screenshots" / "2024-03" / "Screenshot 2.png"


def test_global_option_overrides_configured_mode(make_context, make_file, tmp_path: Path) -> None:
    context = make_context([_move("Docs", "{destinations.documents}/PDF", extension=["pdf"])])
    file = make_file("report.pdf")

    local = Suggester(context).suggest(file, SuggestOptions(base_dir=tmp_path / "inbox"))
    global_ = Suggester(context).suggest(file, SuggestOptions(use_global_destinations=True))

    assert isinstance(local, Suggestion) and isinstance(global_, Suggestion)
    assert local.destination == tmp_path / "inbox" / "Documents" / "PDF" / "report.pdf"
    assert global_.destination == tmp_path / "Documents" / "PDF" / "report.pdf"


def test_suggest_action_always_requires_confirmation(make_context, make_file) -> None:
    context = make_context(
        [{"name": "Notes", "match": {"extension": ["md"]}, "action": {"suggest_to": "~/Notes"}}],
        use_global_destinations=True,
    )

    suggestion = Suggester(context).suggest(make_file("todo.md"))

    assert isinstance(suggestion, Suggestion)
    assert suggestion.confidence == 0.6
    assert suggestion.requires_confirmation
    assert suggestion.mode is SuggestionMode.SUGGEST


def test_delete_suggestion_has_no_destination(make_context, make_file) -> None:
    context = make_context(
        [{"name": "Junk", "match": {"extension": ["tmp"]}, "action": {"delete": True}}]
    )

    suggestion = Suggester(context).suggest(make_file("scratch.tmp"))

    assert isinstance(suggestion, Suggestion)
    assert suggestion.is_deletion
    assert suggestion.destination is None
    assert suggestion.requires_confirmation
    assert suggestion.mode is SuggestionMode.SUGGEST


def test_delete_confirmation_can_be_waived_explicitly(make_context, make_file) -> None:
    rules = [
        {"name": "Junk", "match": {"extension": ["tmp"]}, "action": {"delete": True}},
        {
            "name": "Trusted junk",
            "priority": 90,
            "match": {"extension": ["bak"]},
            "action": {"delete": True, "confirm": False},
        },
    ]
    context = make_context(rules, confirm_destructive=False)
    suggester = Suggester(context)

    default = suggester.suggest(make_file("a.tmp"))
    waived = suggester.suggest(make_file("b.bak"))

    assert isinstance(default, Suggestion) and isinstance(waived, Suggestion)
    assert default.requires_confirmation
    assert not waived.requires_confirmation
    assert waived.mode is SuggestionMode.AUTO


def test_file_already_in_destination_is_skipped(make_context, make_file, tmp_path: Path) -> None:
    context = make_context(
        [_move("Docs", "{destinations.documents}", extension=["pdf"])],
        use_global_destinations=True,
    )
    file = make_file("report.pdf", directory=tmp_path / "Documents")

    outcome = Suggester(context).suggest(file)

    assert isinstance(outcome, SkippedFile)
    assert outcome.reason is SkipReason.ALREADY_ORGANIZED


def test_unknown_destination_is_skipped(make_context, make_file) -> None:
    context = make_context(
        [_move("Broken", "{destinations.nowhere}/x", extension=["txt"])],
        use_global_destinations=True,
    )

    outcome = Suggester(context).suggest(make_file("a.txt"))

    assert isinstance(outcome, SkippedFile)
    assert outcome.reason is SkipReason.UNKNOWN_DESTINATION
    assert outcome.rule_name == "Broken"


def test_unmatched_file_is_skipped(make_context, make_file) -> None:
    outcome = Suggester(make_context()).suggest(make_file("a.xyz"))

    assert isinstance(outcome, SkippedFile)
    assert outcome.reason is SkipReason.NO_RULE_MATCHED


def test_plan_orders_by_confidence_and_collects_skips(make_context, make_file) -> None:
    rules = [
        _move("Docs", "~/Docs", extension=["pdf"]),
        {"name": "Notes", "match": {"extension": ["md"]}, "action": {"suggest_to": "~/Notes"}},
        {"name": "Old", "match": {"extension": ["zip"]}, "action": {"archive_to": "~/Archive"}},
    ]
    context = make_context(rules, use_global_destinations=True)
    files = [make_file("a.zip"), make_file("b.md"), make_file("c.pdf"), make_file("d.xyz")]

    batch = Suggester(context).plan(files)

    assert [s.rule_name for s in batch.suggestions] == ["Docs", "Notes", "Old"]
    assert [s.confidence for s in batch.suggestions] == [1.0, 0.6, 0.5]
    assert batch.skip_counts() == {"no_rule_matched": 1}


def test_rule_confidence_override(make_context, make_file) -> None:
    rule = _move("Docs", "~/Docs", extension=["pdf"])
    rule["confidence"] = 0.75
    context = make_context([rule], use_global_destinations=True)

    suggestion = Suggester(context).suggest(make_file("a.pdf"))

    assert isinstance(suggestion, Suggestion)
    assert suggestion.confidence == 0.75
    assert suggestion.mode is SuggestionMode.SUGGEST


def test_learned_rule_confidence_rises_with_patterns(make_context, make_file, tmp_path) -> None:
    rule = _move("Learned: PDF files", "~/Docs", priority=60, extension=["pdf"])
    rule["origin"] = "learned"
    context = make_context([rule], use_global_destinations=True)
    file = make_file("a.pdf")

    plain = Suggester(context).suggest(file)
    boosted = Suggester(context, pattern_confidence=lambda f, d: 0.875).suggest(file)
    capped = Suggester(context, pattern_confidence=lambda f, d: 1.0).suggest(file)

    assert isinstance(plain, Suggestion) and plain.learned
    assert plain.confidence == 0.6
    assert isinstance(boosted, Suggestion) and boosted.confidence == 0.875
    assert isinstance(capped, Suggestion) and capped.confidence == 1.0


def test_alternatives_come_from_lower_priority_rules(make_context, make_file) -> None:
    rules = [
        _move("Invoices", "~/Invoices", priority=90, extension=["pdf"], filename=["*invoice*"]),
        _move("Docs", "~/Docs", priority=70, extension=["pdf"]),
        _move("Everything", "~/Misc", priority=1),
    ]
    context = make_context(rules, use_global_destinations=True)
    suggester = Suggester(context)
    file = make_file("invoice-1.pdf")

    primary = suggester.suggest(file)
    alternatives = suggester.alternatives(file, count=3)

    assert isinstance(primary, Suggestion) and primary.rule_name == "Invoices"
    assert [s.rule_name for s in alternatives] == ["Docs", "Everything"]


def test_explain_mentions_rule_and_conditions(make_context, make_file) -> None:
    context = make_context(
        [_move("Docs", "~/Docs", priority=70, extension=["pdf"])], use_global_destinations=True
    )
    suggester = Suggester(context)
    suggestion = suggester.suggest(make_file("a.pdf"))
    assert isinstance(suggestion, Suggestion)

    explanation = suggester.explain(suggestion)

    assert "Matched rule 'Docs' (priority 70)" in explanation
    assert "extension=['pdf']" in explanation
    assert "confidence 100%" in explanation


def test_filter_and_group_helpers(make_context, make_file) -> None:
    rules = [
        _move("Docs", "~/Docs", extension=["pdf"]),
        {"name": "Junk", "match": {"extension": ["tmp"]}, "action": {"delete": True}},
    ]
    context = make_context(rules, use_global_destinations=True)
    suggestions = Suggester(context).generate_suggestions(
        [make_file("a.pdf"), make_file("b.pdf"), make_file("c.tmp")]
    )

    assert len(filter_suggestions(suggestions, action=ActionKind.DELETE)) == 1
    assert len(filter_suggestions(suggestions, rule_name="Docs", min_confidence=0.9)) == 2
    assert filter_suggestions(suggestions, mode=SuggestionMode.AUTO)[0].rule_name == "Docs"

    by_destination = group_by_destination(suggestions)
    assert len(by_destination[None]) == 1
    assert len(by_destination[context.home / "Docs"]) == 2
    assert set(group_by_action(suggestions)) == {ActionKind.MOVE, ActionKind.DELETE}


def _relocated(make_file, suggestion: Suggestion):
    destination = suggestion.destination
    assert destination is not None
    return make_file(destination.name, directory=destination.parent, create=False)


def test_executed_batch_yields_no_second_suggestions(
    make_context, make_file, repository: StateRepository, tmp_path: Path
) -> None:
    """Ensure suggesting again after executing a local batch finds nothing to do.

    Args:
        make_context: Factory building isolated organizer contexts.
        make_file: Factory writing files under ``tmp_path``.
        repository: Repository fixture backed by a temporary database.
        tmp_path: Temporary directory provided by pytest.
    """
    context = make_context(
        [_move("Docs", "{destinations.documents}/PDF", priority=120, extension=["pdf"])],
        presets=True,
    )
    suggester = Suggester(context)
    inbox = tmp_path / "inbox"
    options = SuggestOptions(base_dir=inbox)
    files = [make_file("Screenshot a.png"), make_file("report.pdf")]

    first = suggester.plan(files, options)
    report = Executor(context, repository).execute_many(first.suggestions)
    second = suggester.plan([_relocated(make_file, s) for s in first.suggestions], options)

    assert report.summary.succeeded == 2
    assert {s.destination for s in first.suggestions} == {
        inbox / "Screenshots" / "2024-03" / "Screenshot a.png",
        inbox / "Documents" / "PDF" / "report.pdf",
    }
    assert second.suggestions == []
    assert second.skip_counts() == {"already_organized": 2}


def test_local_mode_without_base_dir_resolves_globally(
    make_context, make_file, repository: StateRepository, tmp_path: Path
) -> None:
    context = make_context(presets=True)
    suggester = Suggester(context)

    suggestion = suggester.suggest(make_file("Screenshot a.png"))
    assert isinstance(suggestion, Suggestion)
    Executor(context, repository).execute(suggestion)
    again = suggester.suggest(_relocated(make_file, suggestion))

    assert suggestion.destination == (
        tmp_path / "Pictures" / "Screenshots" / "2024-03" / "Screenshot a.png"
    )
    assert isinstance(again, SkippedFile)
    assert again.reason is SkipReason.ALREADY_ORGANIZED


def test_unknown_and_missing_tokens_are_reported(make_context, make_file) -> None:
    context = make_context(
        [_move("Music", "~/Music/{audio.artist}/{mood}", extension=["mp3"])],
        use_global_destinations=True,
    )
    suggester = Suggester(context)

    suggestion = suggester.suggest(make_file("song.mp3"))

    assert isinstance(suggestion, Suggestion)
    assert suggestion.destination == context.home / "Music" / "{mood}" / "song.mp3"
    assert suggestion.partial
    assert suggestion.unresolved_tokens == ["audio.artist"]
    assert suggestion.unknown_tokens == ["mood"]
    assert "unknown placeholders mood" in suggester.explain(suggestion)
