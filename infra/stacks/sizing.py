"""Fargate task size resolution."""

from __future__ import annotations

import logging
from typing import Dict, List

logger = logging.getLogger(__name__)


def _mib(gb_from: int, gb_to: int, step_gb: int = 1) -> List[int]:
    return [gb * 1024 for gb in range(gb_from, gb_to + 1, step_gb)]


# task CPU units -> allowed task memory (MiB)
FARGATE_MEMORY: Dict[int, List[int]] = {
    256: [512, 1024, 2048],
    512: _mib(1, 4),
    1024: _mib(2, 8),
    2048: _mib(4, 16),
    4096: _mib(8, 30),
    8192: _mib(16, 60, 4),
    16384: _mib(32, 120, 8),
}


def task_memory_for(cpu: int, container_memory: int) -> int:
    """
    Smallest Fargate task memory for ``cpu`` that fits ``container_memory``.

    Container limits are free-form but the task itself must use one of the
    combinations Fargate accepts.
    """
    try:
        choices = FARGATE_MEMORY[cpu]
    except KeyError:
        raise ValueError(f"unsupported Fargate CPU value: {cpu}") from None

    for mib in choices:
        if mib >= container_memory:
            if mib != container_memory:
                logger.debug("task memory for cpu=%s raised from %s to %s MiB", cpu, container_memory, mib)
            return mib

    raise ValueError(
        f"container memory {container_memory} MiB exceeds the {choices[-1]} MiB "
        f"maximum for {cpu} CPU units"
    )
