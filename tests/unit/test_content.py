"""Tests for content-model matching (sequence, choice, all, occurrence ranges, recovery)."""

from __future__ import annotations

import pytest

from xsdcatalog.compiler.components import (
    CompiledSchema,
    Compositor,
    ElementDecl,
    ElementParticle,
    ModelGroup,
    Name,
    Wildcard,
    WildcardParticle,
)
from xsdcatalog.compiler.content import ContentMatcher


def el(local: str, min_occurs: int = 1, max_occurs: int | None = 1) -> ElementParticle:
    return ElementParticle(ElementDecl(name=("", local)), min_occurs, max_occurs)


def names(*locals_: str) -> list[Name]:
    return [("", n) for n in locals_]


@pytest.fixture
def matcher() -> ContentMatcher:
    return ContentMatcher(CompiledSchema())


class TestSequence:
    def test_exact_sequence(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.SEQUENCE, [el("a"), el("b")])
        assert matcher.match(group, names("a", "b"), "p") == []

    def test_wrong_order(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.SEQUENCE, [el("a"), el("b")])
        mismatches = matcher.match(group, names("b", "a"), "p")
        assert mismatches[0].index == 0
        assert mismatches[0].message == "element 'b' not allowed here; expected 'a'"

    def test_missing_required_child(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.SEQUENCE, [el("a"), el("b")])
        mismatches = matcher.match(group, names("a"), "p")
        assert len(mismatches) == 1
        assert mismatches[0].index is None
        assert mismatches[0].message == "element 'p' is incomplete; expected 'b'"

    def test_occurrence_bounds(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.SEQUENCE, [el("item", 2, 3)])
        assert matcher.match(group, names("item", "item"), "p") == []
        assert matcher.match(group, names("item", "item", "item"), "p") == []
        too_many = matcher.match(group, names(*["item"] * 4), "p")
        assert [m.index for m in too_many] == [3]
        assert "expected end of content of 'p'" in too_many[0].message
        too_few = matcher.match(group, names("item"), "p")
        assert too_few[0].index is None

    def test_unbounded(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.SEQUENCE, [el("item", 0, None), el("end")])
        assert matcher.match(group, names(*["item"] * 50, "end"), "p") == []

    def test_huge_minimum_on_emptiable_group(self) -> None:
        calls: list[int] = []
        matcher = ContentMatcher(CompiledSchema(), checkpoint=lambda: calls.append(1))
        group = ModelGroup(Compositor.SEQUENCE, [el("x", 0)], 3_000_000, None)
        assert matcher.match(group, [], "a") == []
        assert matcher.match(group, names("x", "x"), "a") == []
        assert len(calls) < 100

    def test_checkpoint_runs_inside_occurrence_loop(self) -> None:
        calls: list[int] = []

        def stop_after_a_few() -> None:
            calls.append(1)
            if len(calls) > 5:
                raise TimeoutError("stop")

        matcher = ContentMatcher(CompiledSchema(), checkpoint=stop_after_a_few)
        group = ModelGroup(Compositor.SEQUENCE, [el("x")], 1, None)
        with pytest.raises(TimeoutError):
            matcher.match(group, names(*["x"] * 50), "a")

    def test_optional_children(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.SEQUENCE, [el("a", 0), el("b", 0)])
        assert matcher.match(group, [], "p") == []
        assert matcher.match(group, names("b"), "p") == []


class TestChoice:
    def test_exactly_one(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.CHOICE, [el("email"), el("phone")])
        assert matcher.match(group, names("phone"), "contact") == []
        mismatches = matcher.match(group, names("email", "phone"), "contact")
        assert len(mismatches) == 1
        assert mismatches[0].index == 1

    def test_repeated_choice(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.CHOICE, [el("x"), el("y")], 1, None)
        assert matcher.match(group, names("x", "y", "y", "x"), "p") == []

    def test_nested_groups(self, matcher: ContentMatcher) -> None:
        inner = ModelGroup(Compositor.CHOICE, [el("b"), ModelGroup(Compositor.SEQUENCE, [el("c"), el("d")])])
        group = ModelGroup(Compositor.SEQUENCE, [el("a"), inner, el("e")])
        assert matcher.match(group, names("a", "b", "e"), "p") == []
        assert matcher.match(group, names("a", "c", "d", "e"), "p") == []
        assert matcher.match(group, names("a", "c", "e"), "p")


class TestAll:
    def test_any_order(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.ALL, [el("x"), el("y"), el("z", 0)])
        assert matcher.match(group, names("y", "x"), "p") == []
        assert matcher.match(group, names("z", "y", "x"), "p") == []

    def test_duplicate_member(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.ALL, [el("x"), el("y")])
        mismatches = matcher.match(group, names("x", "x", "y"), "p")
        assert [m.index for m in mismatches] == [1]

    def test_missing_member(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.ALL, [el("x"), el("y")])
        mismatches = matcher.match(group, names("y"), "p")
        assert mismatches[0].message == "element 'p' is incomplete; expected 'x'"


class TestWildcards:
    def test_namespace_constraint(self, matcher: ContentMatcher) -> None:
        wildcard = Wildcard("not", frozenset({"urn:own"}))
        group = ModelGroup(Compositor.SEQUENCE, [WildcardParticle(wildcard, 0, None)])
        assert matcher.match(group, [("urn:ext", "x"), ("urn:ext", "y")], "p") == []
        mismatches = matcher.match(group, [("urn:own", "x")], "p")
        assert "any element from another namespace" in mismatches[0].message


class TestRecovery:
    def test_several_independent_problems(self, matcher: ContentMatcher) -> None:
        group = ModelGroup(Compositor.SEQUENCE, [el("a"), el("b"), el("c")])
        mismatches = matcher.match(group, names("a", "x", "b", "y", "c"), "p")
        assert [m.index for m in mismatches] == [1, 3]
        assert all("not allowed here" in m.message for m in mismatches)

    def test_no_children_permitted(self, matcher: ContentMatcher) -> None:
        mismatches = matcher.match(None, names("b"), "a")
        assert len(mismatches) == 1
        assert mismatches[0].message == "element 'b' not allowed here; 'a' permits no child elements"

    def test_checkpoint_is_called(self) -> None:
        calls: list[int] = []
        matcher = ContentMatcher(CompiledSchema(), checkpoint=lambda: calls.append(1))
        matcher.match(ModelGroup(Compositor.SEQUENCE, [el("a")]), names("a"), "p")
        assert calls

    def test_checkpoint_can_abort(self) -> None:
        def stop() -> None:
            raise TimeoutError("stop")

        matcher = ContentMatcher(CompiledSchema(), checkpoint=stop)
        with pytest.raises(TimeoutError):
            matcher.match(ModelGroup(Compositor.SEQUENCE, [el("a")]), names("a"), "p")
