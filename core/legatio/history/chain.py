"""
Chain resolution: rebuild one root-to-leaf conversation path from a flat,
parent-linked prompt snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from legatio.errors import DataIntegrityError
from legatio.schemas.records import Prompt

_logger = logging.getLogger(__name__)


class PromptIndex:
    """Identifier-indexed view over a prompt snapshot.

    Built once per snapshot in O(n). The snapshot itself is never mutated;
    ``pop`` only removes entries from this index.
    """

    def __init__(self, prompts: Iterable[Prompt]) -> None:
        self._by_id: dict[str, Prompt] = {p.prompt_id: p for p in prompts}

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, prompt_id: object) -> bool:
        return prompt_id in self._by_id

    def __iter__(self) -> Iterator[Prompt]:
        return iter(self._by_id.values())

    def get(self, prompt_id: str) -> Prompt | None:
        return self._by_id.get(prompt_id)

    def pop(self, prompt_id: str) -> Prompt | None:
        return self._by_id.pop(prompt_id, None)

    def children_of(self, prompt_id: str) -> list[Prompt]:
        return [p for p in self._by_id.values() if p.parent_id == prompt_id]

    def roots(self) -> list[Prompt]:
        """Prompts whose parent is the root sentinel or missing from the snapshot."""
        return [p for p in self._by_id.values() if p.is_root or p.parent_id not in self._by_id]

    def leaves(self) -> list[Prompt]:
        """Prompts nobody points at: the tips of every branch."""
        parents = {p.parent_id for p in self._by_id.values()}
        return [p for p in self._by_id.values() if p.prompt_id not in parents]

    def latest(self) -> Prompt | None:
        """Most recently created prompt, or None for an empty snapshot."""
        if not self._by_id:
            return None
        return max(self._by_id.values(), key=lambda p: p.created_at)


class ChainResolver:
    """
    Resolve the ordered chain of prompts ending at a leaf.

    Walks parent links from the leaf upward. Each visited prompt is popped
    from the index, so a self-reference or a cycle ends the walk instead of
    looping. The walk also stops at a root, or at a parent that is absent
    from the snapshot.

    Broken chains (missing parent, cycle) are handled by policy:
    - lenient (default): stop and return the partial chain
    - strict: raise DataIntegrityError

    Cost is O(n) to index plus O(depth) to walk.
    """

    def __init__(self, strict: bool = False, logger: logging.Logger | None = None) -> None:
        self.strict = strict
        self._logger = logger or _logger

    def resolve(self, prompts: Iterable[Prompt], leaf: Prompt) -> list[Prompt]:
        """
        Return the chain from the tree root down to *leaf*, root first.

        Args:
            prompts: Every prompt of the leaf's project (order is irrelevant)
            leaf: The prompt the chain ends at. Used as given, so it need not
                be part of *prompts*

        Returns:
            List of prompts, root first, ending with *leaf*

        Raises:
            DataIntegrityError: In strict mode, when a parent is missing or
                the parent links form a cycle
        """
        index = PromptIndex(prompts)
        index.pop(leaf.prompt_id)
        visited = {leaf.prompt_id}

        chain = [leaf]
        current = leaf
        while not current.is_root:
            parent_id = current.parent_id
            parent = index.pop(parent_id)
            if parent is None:
                self._broken_link(current, parent_id, cycle=parent_id in visited)
                break
            visited.add(parent.prompt_id)
            chain.append(parent)
            current = parent

        chain.reverse()
        self._logger.debug(
            f"Resolved chain of {len(chain)} prompt(s) ending at {leaf.prompt_id}",
            extra={"chain_length": len(chain)},
        )
        return chain

    def _broken_link(self, prompt: Prompt, parent_id: str, cycle: bool) -> None:
        if cycle:
            message = f"Prompt {prompt.prompt_id} links back to {parent_id}, forming a cycle"
        else:
            message = f"Prompt {prompt.prompt_id} references missing parent {parent_id}"

        if self.strict:
            self._logger.error(message)
            raise DataIntegrityError(message, prompt.prompt_id, parent_id)
        self._logger.warning(f"{message}; truncating chain")


def resolve_chain(
    prompts: Iterable[Prompt],
    leaf: Prompt,
    strict: bool = False,
) -> list[Prompt]:
    """Shortcut for ``ChainResolver(strict).resolve(prompts, leaf)``."""
    return ChainResolver(strict=strict).resolve(prompts, leaf)
