"""
Pipeline Composer

Builds the single, ordered list of request stages every request passes
through. Ordering intent is declared with symbolic position hints relative
to the one security stage:

- BEFORE_SECURITY: only fail-fast error handling and liveness probes
- AFTER_SECURITY: everything that must see security-decorated responses
- TERMINAL: routing and business endpoints, always last

build() validates the registrations and freezes them into an immutable
Pipeline. An invalid ordering raises PipelineOrderingError at startup, so a
partially ordered pipeline is never served.
"""

from enum import Enum
from typing import List, Optional, Sequence, Tuple

from fastapi import APIRouter
from pydantic import BaseModel
from starlette.middleware import Middleware
import structlog

from service_base.exceptions import PipelineOrderingError

logger = structlog.get_logger()


class PositionHint(str, Enum):
    """Where a stage sits relative to the security stage"""
    BEFORE_SECURITY = "before_security"
    AFTER_SECURITY = "after_security"
    TERMINAL = "terminal"


class StageCategory(str, Enum):
    """What a stage does"""
    ERROR_HANDLING = "error_handling"
    HEALTH_PROBE = "health_probe"
    SECURITY = "security"
    STATIC_CONTENT = "static_content"
    CORRELATION = "correlation"
    REQUEST_LOGGING = "request_logging"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    ROUTING = "routing"
    ENDPOINTS = "endpoints"
    CUSTOM = "custom"


# Categories allowed ahead of the security stage
BEFORE_SECURITY_CATEGORIES = frozenset({
    StageCategory.ERROR_HANDLING,
    StageCategory.HEALTH_PROBE,
})


class Stage(BaseModel):
    """
    One unit of request processing

    Middleware stages carry a Starlette Middleware; terminal stages carry
    the routers that make up routing and business endpoints.
    """

    name: str
    category: StageCategory = StageCategory.CUSTOM
    middleware: Optional[Middleware] = None
    routers: Tuple[APIRouter, ...] = ()

    class Config:
        frozen = True
        arbitrary_types_allowed = True


class Pipeline:
    """Immutable, ordered stage sequence"""

    def __init__(self, entries: Sequence[Tuple[Stage, Optional[PositionHint]]]):
        self._entries = tuple(entries)

    def __iter__(self):
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def stages(self) -> Tuple[Stage, ...]:
        return tuple(stage for stage, _ in self._entries)

    @property
    def names(self) -> List[str]:
        return [stage.name for stage, _ in self._entries]

    def middleware(self) -> List[Middleware]:
        """Middleware in execution order, outermost first (FastAPI(middleware=...))"""
        return [stage.middleware for stage in self.stages if stage.middleware is not None]

    def routers(self) -> List[APIRouter]:
        return [router for stage in self.stages for router in stage.routers]


class PipelineComposer:
    """
    Ordered stage registration

    Usage:
        composer = PipelineComposer()
        composer.register(error_stage, PositionHint.BEFORE_SECURITY)
        composer.use_security(security_stage)
        composer.register(auth_stage, PositionHint.AFTER_SECURITY)
        pipeline = composer.build()
    """

    def __init__(self):
        self._entries: List[Tuple[Stage, Optional[PositionHint]]] = []
        self._security_index: Optional[int] = None

    def register(self, stage: Stage, hint: PositionHint) -> "PipelineComposer":
        """Append a stage with its position hint"""
        if stage.category is StageCategory.SECURITY:
            raise PipelineOrderingError(
                stage.name, PositionHint(hint).value, "security stages are added with use_security()"
            )
        self._entries.append((stage, PositionHint(hint)))
        return self

    def use_security(self, stage: Stage) -> "PipelineComposer":
        """Append the single security stage"""
        if self._security_index is not None:
            existing = self._entries[self._security_index][0]
            raise PipelineOrderingError(
                stage.name, None, f"security stage '{existing.name}' is already registered"
            )
        self._security_index = len(self._entries)
        self._entries.append((stage.model_copy(update={"category": StageCategory.SECURITY}), None))
        return self

    def build(self) -> Pipeline:
        """
        Validate ordering and freeze the pipeline

        Raises:
            PipelineOrderingError: first offending stage
        """
        if self._security_index is None:
            raise PipelineOrderingError("<security>", None, "no security stage registered")

        seen_terminal = False
        for index, (stage, hint) in enumerate(self._entries):
            if index == self._security_index:
                continue

            before = index < self._security_index

            if hint is PositionHint.BEFORE_SECURITY:
                if stage.category not in BEFORE_SECURITY_CATEGORIES:
                    raise PipelineOrderingError(
                        stage.name, hint.value,
                        "only error handling and health probe stages may run before security",
                    )
                if not before:
                    raise PipelineOrderingError(stage.name, hint.value, "registered after the security stage")
            elif hint is PositionHint.AFTER_SECURITY:
                if before:
                    raise PipelineOrderingError(stage.name, hint.value, "registered before the security stage")
                if seen_terminal:
                    raise PipelineOrderingError(stage.name, hint.value, "registered after a terminal stage")
            elif hint is PositionHint.TERMINAL:
                if before:
                    raise PipelineOrderingError(stage.name, hint.value, "registered before the security stage")
                seen_terminal = True

            if hint is not PositionHint.TERMINAL and stage.routers:
                raise PipelineOrderingError(stage.name, hint.value, "only terminal stages may carry routers")

        self._warn_unsafe_orderings()

        pipeline = Pipeline(self._entries)
        logger.debug("pipeline_built", stages=pipeline.names)
        return pipeline

    def _warn_unsafe_orderings(self) -> None:
        positions = {}
        for index, (stage, _) in enumerate(self._entries):
            positions.setdefault(stage.category, index)

        authn = positions.get(StageCategory.AUTHENTICATION)
        authz = positions.get(StageCategory.AUTHORIZATION)
        static = positions.get(StageCategory.STATIC_CONTENT)

        if authz is not None and (authn is None or authz < authn):
            logger.warning(
                "pipeline_ordering_warning",
                stage=self._entries[authz][0].name,
                reason="authorization runs without a resolved identity",
            )
        if static is not None and authn is not None and authn < static:
            logger.warning(
                "pipeline_ordering_warning",
                stage=self._entries[authn][0].name,
                reason="authentication runs for static content",
            )
