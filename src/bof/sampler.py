"""
Descriptor Sampler

- 이미지별 descriptor 추출을 worker pool 에서 병렬로 수행한다.
- 이미지별 상한(max_descriptors_per_image)과 전역 상한(number_of_descriptors)을 적용해
    군집화에 들어갈 descriptor 풀의 크기를 제한한다.
- 각 descriptor 가 어떤 이미지에서 왔는지(image_indices)를 함께 유지한다.

샘플링 규칙:
    1) 이미지별: 상한보다 많으면 비복원 균등 추출
    2) 전역: 누적 수가 상한에 도달하면 남은 이미지는 검출 생략(best-effort)
    3) 전역: 모든 이미지 처리 후 풀에서 정확히 number_of_descriptors 개를 비복원 균등 추출

재현성:
    SeedSequence 하나를 (이미지 수 + 1)개로 spawn 하여 이미지마다 독립 Generator 를 사용한다.
    따라서 seed 가 같고 전역 상한으로 건너뛴 이미지가 없으면 worker 수와 무관하게 결과가 같다.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

import numpy as np

from bof.errors import DimensionMismatchError, InsufficientDescriptorsError
from bof.parallel import parallel_for
from features.detectors import FeatureDetector

logger = logging.getLogger("bovw_logger")

# (입력 항목, worker 전용 detector) → (N, D) descriptor
ExtractFn = Callable[[Any, FeatureDetector], np.ndarray]


@dataclass
class SampledDescriptors:
    """
    샘플링 결과.

    Attributes:
        descriptors (np.ndarray): (N, D) float32 descriptor 풀.
        image_indices (np.ndarray): (N,) 각 descriptor 의 원본 이미지 index.
        weights (Optional[np.ndarray]): (N,) descriptor 별 가중치 (이미지 가중치 상속).
        raw_counts (np.ndarray): (M,) 이미지별 샘플링 전 descriptor 수.
        extracted (np.ndarray): (M,) bool, 실제로 검출을 수행한 이미지 여부.
    """

    descriptors: np.ndarray
    image_indices: np.ndarray
    weights: Optional[np.ndarray]
    raw_counts: np.ndarray
    extracted: np.ndarray

    @property
    def number_of_images(self) -> int:
        return int(self.raw_counts.shape[0])

    def __len__(self) -> int:
        return int(self.descriptors.shape[0])


class _TakenCounter:
    """worker 들이 공유하는 누적 descriptor 카운터."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        return self._value

    def add(self, amount: int) -> int:
        with self._lock:
            self._value += amount
            return self._value


@dataclass
class DescriptorSampler:
    """
    이미지 집합에서 descriptor 풀을 만드는 샘플러.

    Attributes:
        detector (FeatureDetector): 공유 Detector (병렬 실행 시 worker 마다 clone).
        number_of_descriptors (int): 전역 상한. 0 이면 제한 없음.
        max_descriptors_per_image (int): 이미지별 상한. 0 이면 제한 없음.
        parallelism (Optional[int]): worker 수. 1 이면 순차 실행, None 이면 CPU 코어 수.
        seed (Optional[int]): 샘플링 Generator 시드.
    """

    detector: FeatureDetector
    number_of_descriptors: int = 0
    max_descriptors_per_image: int = 0
    parallelism: Optional[int] = None
    seed: Optional[int] = None

    def sample(
        self,
        items: Sequence[Any],
        extract: ExtractFn,
        weights: Optional[Sequence[float]] = None,
    ) -> SampledDescriptors:
        """
        이미지 목록에서 descriptor 를 추출/샘플링하여 하나의 풀로 합친다.

        Args:
            items (Sequence[Any]): 이미지 경로/배열/버퍼 목록.
            extract (ExtractFn): (항목, detector) → (N, D) descriptor 함수.
            weights (Optional[Sequence[float]]): 이미지별 가중치. 길이는 len(items).

        Returns:
            SampledDescriptors: descriptor 풀과 이미지 index 매핑.

        Raises:
            DimensionMismatchError: weights 길이가 이미지 수와 다를 때 (검출 전에 검사).
            InsufficientDescriptorsError: 이미지별 상한 적용 후 descriptor 수가
                전역 상한보다 적을 때.
        """
        count = len(items)
        image_weights = None
        if weights is not None:
            image_weights = np.asarray(weights, dtype=np.float64).reshape(-1)
            if image_weights.shape[0] != count:
                raise DimensionMismatchError(
                    f"weights 길이({image_weights.shape[0]})가 이미지 수({count})와 같아야 합니다."
                )

        global_cap = int(self.number_of_descriptors)
        image_cap = int(self.max_descriptors_per_image)
        seeds = np.random.SeedSequence(self.seed).spawn(count + 1)

        per_image: List[Optional[np.ndarray]] = [None] * count
        raw_counts = np.zeros((count,), dtype=np.int64)
        extracted = np.zeros((count,), dtype=bool)
        taken = _TakenCounter()

        def process(i: int, detector: FeatureDetector) -> None:
            # 전역 상한 도달 시 남은 이미지는 검출 생략 (동시 실행 중에는 best-effort)
            if global_cap > 0 and taken.value >= global_cap:
                return

            desc = np.asarray(extract(items[i], detector), dtype=np.float32)
            if desc.ndim != 2:
                raise ValueError(f"descriptors must be 2D array: shape (N, D), got {desc.shape} (image {i})")

            raw_counts[i] = desc.shape[0]
            extracted[i] = True

            if image_cap > 0 and desc.shape[0] > image_cap:
                rng = np.random.default_rng(seeds[i])
                keep = np.sort(rng.choice(desc.shape[0], size=image_cap, replace=False))
                desc = desc[keep]

            taken.add(desc.shape[0])
            per_image[i] = desc

        parallel_for(count, self.detector, process, self.parallelism)

        total = taken.value
        if global_cap > 0 and total < global_cap:
            raise InsufficientDescriptorsError(requested=global_cap, available=total, max_per_image=image_cap)

        descriptors, image_indices = self._pool(per_image)
        pooled_weights = image_weights[image_indices] if image_weights is not None else None

        if global_cap > 0:
            rng = np.random.default_rng(seeds[count])
            keep = np.sort(rng.choice(descriptors.shape[0], size=global_cap, replace=False))
            descriptors = descriptors[keep]
            image_indices = image_indices[keep]
            if pooled_weights is not None:
                pooled_weights = pooled_weights[keep]

        logger.info(
            "[Sampler] images=%d (extracted=%d) | pooled=%d | taken=%d | cap/image=%d, cap/global=%d",
            count,
            int(extracted.sum()),
            total,
            descriptors.shape[0],
            image_cap,
            global_cap,
        )

        return SampledDescriptors(
            descriptors=descriptors,
            image_indices=image_indices,
            weights=pooled_weights,
            raw_counts=raw_counts,
            extracted=extracted,
        )

    def _pool(self, per_image: List[Optional[np.ndarray]]):
        """이미지 순서대로 descriptor 를 이어 붙이고 이미지 index 배열을 만든다."""
        retained = [i for i, desc in enumerate(per_image) if desc is not None]
        if not retained:
            empty = np.zeros((0, self.detector.descriptor_size), dtype=np.float32)
            return empty, np.zeros((0,), dtype=np.int64)

        descriptors = np.vstack([per_image[i] for i in retained]).astype(np.float32)
        image_indices = np.repeat(
            np.asarray(retained, dtype=np.int64),
            [per_image[i].shape[0] for i in retained],
        )
        return descriptors, image_indices
