"""
이미지 단위 병렬 처리 유틸리티.

- parallelism 개의 worker 가 공유 queue 에서 이미지 index 를 하나씩 가져가 처리한다.
- Detector 는 thread-safe 하지 않으므로 worker 마다 clone() 을 하나 만들고,
    worker 가 끝나면(정상/예외 모두) close() 로 정리한다.
- parallelism == 1 이면 clone 없이 공유 Detector 로 순차 실행한다.
- 한 worker 에서 예외가 나면 나머지 worker 는 새 이미지를 가져가지 않고,
    첫 번째 예외가 호출자에게 그대로 전달된다.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from features.detectors import FeatureDetector

logger = logging.getLogger("bovw_logger")

ImageAction = Callable[[int, FeatureDetector], None]


def resolve_parallelism(parallelism: Optional[int]) -> int:
    """
    worker 수를 결정한다.

    Args:
        parallelism (Optional[int]): None 또는 0 이하이면 CPU 코어 수 사용.

    Returns:
        int: 1 이상의 worker 수.
    """
    if parallelism is None or parallelism <= 0:
        return max(1, os.cpu_count() or 1)
    return int(parallelism)


def parallel_for(
    count: int,
    detector: FeatureDetector,
    action: ImageAction,
    parallelism: Optional[int] = None,
) -> None:
    """
    0 ~ count-1 의 이미지 index 에 대해 action(i, detector) 를 실행한다.

    Args:
        count (int): 처리할 이미지 수.
        detector (FeatureDetector): 공유 Detector. 병렬 실행 시에는 clone 의 원본.
        action (ImageAction): (이미지 index, 해당 worker 전용 detector) 를 받는 함수.
        parallelism (Optional[int]): worker 수. 1이면 순차 실행.

    Raises:
        Exception: action 에서 발생한 첫 번째 예외를 그대로 전달.
    """
    workers = min(resolve_parallelism(parallelism), max(count, 1))

    if workers == 1:
        for i in range(count):
            action(i, detector)
        return

    pending: "queue.Queue[int]" = queue.Queue()
    for i in range(count):
        pending.put(i)
    stop = threading.Event()

    def worker() -> int:
        processed = 0
        local = detector.clone()
        try:
            while not stop.is_set():
                try:
                    i = pending.get_nowait()
                except queue.Empty:
                    break
                action(i, local)
                processed += 1
        except BaseException:
            stop.set()
            raise
        finally:
            local.close()
        return processed

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bovw") as executor:
        futures = [executor.submit(worker) for _ in range(workers)]

    # executor 종료 시점에 모든 worker 가 끝나 있음 → 제출 순서상 첫 예외를 전달
    for f in futures:
        error = f.exception()
        if error is not None:
            raise error

    logger.debug("[Parallel] workers=%d, images per worker=%s", workers, [f.result() for f in futures])
