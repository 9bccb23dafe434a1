"""Content-model matching: does a sequence of child element names fit a model group?

Matching works on sets of positions rather than backtracking one path at a
time: each particle maps a start position to every position it can end at,
memoized per (particle, position), so occurrence ranges and nested choices
stay polynomial.  When the children do not fit, the furthest position the
model could reach tells which child is out of place; that child is dropped
and matching resumes so independent problems are all reported.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from xsdcatalog.compiler.components import (
    CompiledSchema,
    Compositor,
    ElementParticle,
    ModelGroup,
    Name,
    Particle,
    Wildcard,
    WildcardParticle,
)

Checkpoint = Callable[[], None]

_MAX_EXPECTED_SHOWN = 8


@dataclass(frozen=True)
class ContentMismatch:
    """One content-model violation.

    ``index`` is the offending child's position among the element children,
    or None when the content ended before the model was satisfied.
    """

    index: int | None
    message: str


def _describe_wildcard(wildcard: Wildcard) -> str:
    if wildcard.mode == "any":
        return "any element"
    if wildcard.mode == "not":
        return "any element from another namespace"
    namespaces = sorted("(no namespace)" if ns == "" else ns for ns in wildcard.namespaces)
    return f"any element from {', '.join(namespaces)}"


def _format_expected(expected: set[str]) -> str:
    ordered = sorted(expected)
    shown = ", ".join(ordered[:_MAX_EXPECTED_SHOWN])
    if len(ordered) > _MAX_EXPECTED_SHOWN:
        shown += ", ..."
    return shown


class _Run:
    """A single matching attempt over a fixed list of names."""

    def __init__(
        self,
        schema: CompiledSchema,
        names: list[Name],
        checkpoint: Checkpoint,
        accepted: dict[int, frozenset[Name]],
    ) -> None:
        self._schema = schema
        self._names = names
        self._checkpoint = checkpoint
        self._accepted = accepted
        self._memo: dict[tuple[int, int], frozenset[int]] = {}
        self.furthest = 0
        self.expected: dict[int, set[str]] = {}

    def _reach(self, positions: frozenset[int] | set[int]) -> None:
        if positions:
            self.furthest = max(self.furthest, max(positions))

    def _accepts(self, particle: ElementParticle) -> frozenset[Name]:
        key = id(particle)
        found = self._accepted.get(key)
        if found is None:
            found = frozenset(d.name for d in self._schema.substitutes_for(particle.decl))
            self._accepted[key] = found
        return found

    def _term(self, particle: Particle, pos: int) -> frozenset[int]:
        """Positions reachable by one occurrence of ``particle`` from ``pos``."""
        self.furthest = max(self.furthest, pos)
        if isinstance(particle, ElementParticle):
            if pos < len(self._names) and self._names[pos] in self._accepts(particle):
                return frozenset({pos + 1})
            self.expected.setdefault(pos, set()).add(f"'{particle.decl.name[1]}'")
            return frozenset()
        if isinstance(particle, WildcardParticle):
            if pos < len(self._names) and particle.wildcard.allows(self._names[pos][0]):
                return frozenset({pos + 1})
            self.expected.setdefault(pos, set()).add(_describe_wildcard(particle.wildcard))
            return frozenset()
        if particle.compositor is Compositor.SEQUENCE:
            positions: frozenset[int] = frozenset({pos})
            for child in particle.particles:
                positions = frozenset().union(*(self.match(child, p) for p in positions))
                if not positions:
                    break
            return positions
        if particle.compositor is Compositor.CHOICE:
            if not particle.particles:
                return frozenset()
            return frozenset().union(*(self.match(child, pos) for child in particle.particles))
        return self._all(particle, pos)

    def _all(self, group: ModelGroup, pos: int) -> frozenset[int]:
        """Greedy match of an all-group: each member at most once, in any order."""
        remaining = [p for p in group.particles if isinstance(p, ElementParticle)]
        ends: set[int] = set()
        current = pos
        while True:
            if all(p.min_occurs == 0 for p in remaining):
                ends.add(current)
            if current >= len(self._names):
                break
            name = self._names[current]
            hit = next((p for p in remaining if name in self._accepts(p)), None)
            if hit is None:
                break
            remaining.remove(hit)
            current += 1
        missing = [p for p in remaining if p.min_occurs > 0] or remaining
        for particle in missing:
            self.expected.setdefault(current, set()).add(f"'{particle.decl.name[1]}'")
        self._reach({current})
        return frozenset(ends)

    def match(self, particle: Particle, pos: int) -> frozenset[int]:
        """Positions reachable by ``particle`` with its occurrence range applied."""
        key = (id(particle), pos)
        cached = self._memo.get(key)
        if cached is not None:
            return cached
        self._checkpoint()

        results: set[int] = set()
        if particle.min_occurs == 0:
            results.add(pos)
        frontier: frozenset[int] = frozenset({pos})
        count = 0
        while frontier and (particle.max_occurs is None or count < particle.max_occurs):
            self._checkpoint()
            count += 1
            reached: set[int] = set()
            for start in frontier:
                reached |= self._term(particle, start)
            if count >= particle.min_occurs:
                frontier = frozenset(reached - results)
                results |= reached
            elif reached == frontier:
                # Fixpoint: every further occurrence reaches the same positions,
                # so the remaining minimum is met without iterating it out.
                results |= reached
                break
            else:
                frontier = frozenset(reached)

        ends = frozenset(results)
        self._reach(ends)
        self._memo[key] = ends
        return ends


class ContentMatcher:
    """Matches the element children of one element against a model group."""

    def __init__(self, schema: CompiledSchema, checkpoint: Checkpoint | None = None) -> None:
        self._schema = schema
        self._checkpoint = checkpoint or (lambda: None)
        self._accepted: dict[int, frozenset[Name]] = {}

    def match(self, group: ModelGroup | None, names: list[Name], owner: str) -> list[ContentMismatch]:
        """Return every mismatch between ``names`` and ``group`` (empty when they fit).

        ``group`` None means no child elements are permitted.
        """
        if group is None:
            group = ModelGroup(Compositor.SEQUENCE)
        remaining = list(names)
        indices = list(range(len(names)))
        mismatches: list[ContentMismatch] = []

        while True:
            run = _Run(self._schema, remaining, self._checkpoint, self._accepted)
            ends = run.match(group, 0)
            if len(remaining) in ends:
                return mismatches

            furthest = run.furthest
            expected = run.expected.get(furthest, set())
            if furthest < len(remaining):
                child = remaining[furthest][1]
                if expected:
                    message = f"element '{child}' not allowed here; expected {_format_expected(expected)}"
                elif furthest > 0:
                    message = f"element '{child}' not allowed here; expected end of content of '{owner}'"
                else:
                    message = f"element '{child}' not allowed here; '{owner}' permits no child elements"
                mismatches.append(ContentMismatch(indices[furthest], message))
                del remaining[furthest]
                del indices[furthest]
                continue

            if expected:
                message = f"element '{owner}' is incomplete; expected {_format_expected(expected)}"
            else:
                message = f"element '{owner}' is incomplete"
            mismatches.append(ContentMismatch(None, message))
            return mismatches
