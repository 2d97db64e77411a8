"""
Engine Factory
Centralizes the logic for selecting the store adapter and wiring services.
"""

import logging
from dataclasses import dataclass

from mnemo.application.analysis import LearningPatternAnalyzer
from mnemo.application.config import AppConfig
from mnemo.application.parameters import ParameterService
from mnemo.application.review_queue import ReviewQueue
from mnemo.application.session_manager import ReviewSessionManager
from mnemo.application.stats import LearningStatsService
from mnemo.domain.ports import Clock, SchedulerStore, utc_now
from mnemo.infrastructure.adapters import InMemoryStore, YamlFileStore

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    """All application services sharing one store and one clock."""

    store: SchedulerStore
    parameters: ParameterService
    queue: ReviewQueue
    sessions: ReviewSessionManager
    analyzer: LearningPatternAnalyzer
    stats: LearningStatsService


def build_store(config: AppConfig) -> SchedulerStore:
    """
    Returns the SchedulerStore implementation selected by config.
    """
    if config.store == "memory":
        logger.debug("Store: in-memory")
        return InMemoryStore()

    logger.debug(f"Store: YAML file at {config.store_path}")
    return YamlFileStore(config.store_path)


def build_engine(
    config: AppConfig,
    clock: Clock = utc_now,
    store: SchedulerStore | None = None,
) -> Engine:
    store = store or build_store(config)
    parameters = ParameterService(store, clock)
    queue = ReviewQueue(store, clock)
    return Engine(
        store=store,
        parameters=parameters,
        queue=queue,
        sessions=ReviewSessionManager(store, clock, parameters=parameters, queue=queue),
        analyzer=LearningPatternAnalyzer(
            store,
            clock,
            parameters=parameters,
            history_limit=config.analysis_history_limit,
        ),
        stats=LearningStatsService(store, clock),
    )
