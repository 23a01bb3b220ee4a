"""Validated registry of flow definitions."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from ..contracts import FlowDefinition
from ..exceptions import FlowNotFoundError
from ..validation import FlowValidationError, log_validation_errors, validate_flow

logger = logging.getLogger(__name__)


class FlowRegistry:
    """Holds every flow that passed validation.

    Candidates are validated once, at construction. A flow with any error is
    left out entirely and its errors are logged, so lookups cannot tell an
    invalid flow from one that was never defined.
    """

    def __init__(
        self,
        candidates: Iterable[FlowDefinition] = (),
        active_ids: Optional[Iterable[str]] = None,
    ) -> None:
        self._flows: Dict[str, FlowDefinition] = {}
        self._rejected: Dict[str, List[FlowValidationError]] = {}
        self._active_ids = frozenset(active_ids) if active_ids is not None else None

        for flow in candidates:
            errors = validate_flow(flow)
            if errors:
                log_validation_errors(flow.id, errors)
                self._rejected[flow.id] = errors
                continue
            if flow.id in self._flows:
                logger.warning(f'Flow "{flow.id}" registered twice; keeping the first definition')
                continue
            self._flows[flow.id] = flow

        logger.info(
            f"Flow registry loaded: {len(self._flows)} valid, {len(self._rejected)} rejected"
        )

    # ------------------------------------------------------------------
    def get_flow_by_id(self, flow_id: str) -> Optional[FlowDefinition]:
        return self._flows.get(flow_id)

    def require(self, flow_id: str) -> FlowDefinition:
        """Like :meth:`get_flow_by_id` but raises when the flow is absent.

        Raises:
            FlowNotFoundError: For unknown and for invalid flows alike.
        """
        flow = self._flows.get(flow_id)
        if flow is None:
            raise FlowNotFoundError(flow_id)
        return flow

    @property
    def flows(self) -> Tuple[FlowDefinition, ...]:
        return tuple(self._flows.values())

    def flow_ids(self) -> List[str]:
        return list(self._flows)

    def active_flows(self) -> List[FlowDefinition]:
        """Registered flows that are also marked active (all, when unset)."""
        if self._active_ids is None:
            return list(self._flows.values())
        return [flow for fid, flow in self._flows.items() if fid in self._active_ids]

    def is_active(self, flow_id: str) -> bool:
        return flow_id in self._flows and (
            self._active_ids is None or flow_id in self._active_ids
        )

    @property
    def rejected(self) -> Mapping[str, List[FlowValidationError]]:
        """Validation errors of dropped flows, for diagnostics only."""
        return dict(self._rejected)

    def __contains__(self, flow_id: object) -> bool:
        return flow_id in self._flows

    def __len__(self) -> int:
        return len(self._flows)

    def __iter__(self) -> Iterator[FlowDefinition]:
        return iter(self._flows.values())
