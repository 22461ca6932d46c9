"""
Reference resolution - map a class reference token to a class.

A token is one of:
- an opaque class id
- a fully-qualified path ("Domain/Orders/Order", "/Customer" for root classes)
- a bare class name ("Order")

Bare names can be ambiguous when several models define a class with the same
name. The tie-break is part of the contract:
1. a candidate defined in the context model wins
2. otherwise the candidate with the lexically smallest fully-qualified key
"""

import logging
from collections import defaultdict
from typing import Optional, TYPE_CHECKING

from .models import PATH_SEPARATOR

if TYPE_CHECKING:
    from .models import EntityGraph, ModelClass


logger = logging.getLogger(__name__)


class ReferenceResolver:
    """
    Resolves reference tokens against a fixed entity graph.

    Indexes are built once on construction; rebuild the resolver if the
    graph changes.
    """

    def __init__(self, graph: "EntityGraph"):
        self._by_id: dict[str, "ModelClass"] = dict(graph.classes)
        self._by_fqn: dict[str, "ModelClass"] = {}
        self._by_name: dict[str, list[str]] = defaultdict(list)

        for cls in graph.classes.values():
            # First definition of a key wins, matching insertion order
            self._by_fqn.setdefault(cls.fqn, cls)

        for fqn in sorted(self._by_fqn):
            name = fqn.rsplit(PATH_SEPARATOR, 1)[-1]
            self._by_name[name].append(fqn)

    def resolve(self, token: str, context_model_path: str = "") -> Optional["ModelClass"]:
        """
        Resolve a token to a class.

        Args:
            token: Class id, fully-qualified path, or bare name
            context_model_path: Model the reference is made from

        Returns:
            The class, or None when nothing matches
        """
        if not token:
            return None

        cls = self._by_id.get(token)
        if cls is not None:
            return cls

        if PATH_SEPARATOR in token:
            cls = self._by_fqn.get(token)
        else:
            cls = self._resolve_bare_name(token, context_model_path)

        if cls is None:
            logger.debug("Unresolved reference %r from model %r", token, context_model_path)
        return cls

    def _resolve_bare_name(self, name: str, context_model_path: str) -> Optional["ModelClass"]:
        candidates = self._by_name.get(name)
        if not candidates:
            return None
        for fqn in candidates:
            if self._by_fqn[fqn].home_model_path == context_model_path:
                return self._by_fqn[fqn]
        return self._by_fqn[candidates[0]]

    def candidates(self, name: str) -> list["ModelClass"]:
        """All classes sharing a bare name, in tie-break order (lexical FQN)."""
        return [self._by_fqn[fqn] for fqn in self._by_name.get(name, [])]
