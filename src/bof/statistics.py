"""
BoVW 학습 통계(Statistics Collector)

- 학습 1회마다 새로 계산되며, 이전 학습 결과와 병합하지 않는다.
- 이미지별 descriptor 수의 분포(샘플링 전/후)를 요약한다.
- 진단/로그 용도로만 사용하고, 학습 흐름 제어에는 사용하지 않는다.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

import numpy as np

# MAD → 표준편차 환산 계수 (정규분포 가정)
MAD_TO_STD = 1.4826


@dataclass(frozen=True)
class NormalEstimate:
    """
    이미지별 descriptor 수에 대한 정규분포 추정치.

    Attributes:
        mean (float): 중심값 (robust 추정 시 median).
        variance (float): 분산 (robust 추정 시 MAD 기반).
    """

    mean: float = 0.0
    variance: float = 0.0

    @property
    def std(self) -> float:
        return float(np.sqrt(self.variance))

    @staticmethod
    def estimate(values: np.ndarray, robust: bool = True) -> "NormalEstimate":
        """
        값 배열로부터 평균/분산을 추정한다.

        Args:
            values (np.ndarray): 1D 값 배열.
            robust (bool): True 이면 median / MAD 기반, False 이면 표본 평균 / 분산.

        Returns:
            NormalEstimate: 빈 배열이면 (0, 0).
        """
        values = np.asarray(values, dtype=np.float64).reshape(-1)
        if values.size == 0:
            return NormalEstimate()

        if robust:
            median = float(np.median(values))
            mad = float(np.median(np.abs(values - median)))
            return NormalEstimate(mean=median, variance=(MAD_TO_STD * mad) ** 2)

        return NormalEstimate(mean=float(values.mean()), variance=float(values.var()))


@dataclass(frozen=True)
class IntRange:
    """정수 구간 [min, max]."""

    min: int = 0
    max: int = 0

    @staticmethod
    def of(values: np.ndarray) -> "IntRange":
        values = np.asarray(values).reshape(-1)
        if values.size == 0:
            return IntRange()
        return IntRange(min=int(values.min()), max=int(values.max()))

    @property
    def length(self) -> int:
        return self.max - self.min


@dataclass(frozen=True)
class LearningStatistics:
    """
    BagOfVisualWords.learn() 1회에 대한 통계.

    Attributes:
        total_number_of_images (int): 입력 이미지 수.
        total_number_of_descriptors (int): 샘플링 전 검출된 descriptor 총합.
        total_number_of_descriptors_per_image (NormalEstimate): 샘플링 전 이미지별 descriptor 수 분포.
        total_number_of_descriptors_per_image_range (IntRange): 샘플링 전 이미지별 descriptor 수 범위.
        number_of_images_taken (int): descriptor 가 1개 이상 최종 선택된 이미지 수.
        number_of_descriptors_taken (int): 최종적으로 군집화에 사용한 descriptor 수.
        number_of_descriptors_taken_per_image (NormalEstimate): 샘플링 후 이미지별 descriptor 수 분포.
        number_of_descriptors_taken_per_image_range (IntRange): 샘플링 후 이미지별 descriptor 수 범위.
    """

    total_number_of_images: int = 0
    total_number_of_descriptors: int = 0
    total_number_of_descriptors_per_image: NormalEstimate = field(default_factory=NormalEstimate)
    total_number_of_descriptors_per_image_range: IntRange = field(default_factory=IntRange)
    number_of_images_taken: int = 0
    number_of_descriptors_taken: int = 0
    number_of_descriptors_taken_per_image: NormalEstimate = field(default_factory=NormalEstimate)
    number_of_descriptors_taken_per_image_range: IntRange = field(default_factory=IntRange)

    def to_record(self) -> Dict[str, Any]:
        """JSON/CSV 저장을 위해 통계를 flat dict 로 변환한다."""
        record: Dict[str, Any] = {}
        for key, value in asdict(self).items():
            if isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    record[f"{key}.{sub_key}"] = sub_value
            else:
                record[key] = value
        return record

    def __str__(self) -> str:
        raw = self.total_number_of_descriptors_per_image
        taken = self.number_of_descriptors_taken_per_image
        return (
            f"images={self.number_of_images_taken}/{self.total_number_of_images} | "
            f"descriptors={self.number_of_descriptors_taken}/{self.total_number_of_descriptors} | "
            f"per-image raw={raw.mean:.1f}±{raw.std:.1f} "
            f"[{self.total_number_of_descriptors_per_image_range.min}, "
            f"{self.total_number_of_descriptors_per_image_range.max}] | "
            f"per-image taken={taken.mean:.1f}±{taken.std:.1f} "
            f"[{self.number_of_descriptors_taken_per_image_range.min}, "
            f"{self.number_of_descriptors_taken_per_image_range.max}]"
        )


def compute_statistics(
    raw_counts: np.ndarray,
    image_indices: np.ndarray,
    number_of_images: int,
    extracted: Optional[np.ndarray] = None,
) -> LearningStatistics:
    """
    이미지별 descriptor 수와 최종 선택된 descriptor 의 이미지 index 로 통계를 계산한다.

    Args:
        raw_counts (np.ndarray): (M,) 이미지별 샘플링 전 descriptor 수.
        image_indices (np.ndarray): (N,) 최종 descriptor 각각의 원본 이미지 index.
        number_of_images (int): 입력 이미지 수 M.
        extracted (Optional[np.ndarray]): (M,) bool. 전역 상한 도달로 검출을 건너뛴
            이미지는 False. None 이면 모두 검출된 것으로 본다.

    Returns:
        LearningStatistics: 계산된 통계.

    Notes:
        - 검출을 건너뛴 이미지는 descriptor 수를 알 수 없으므로 분포 계산에서 제외한다.
          (0 개로 세어 분포에 포함하지 않는다. number_of_images_taken 도 실제로 선택된 이미지 수.)
    """
    raw_counts = np.asarray(raw_counts, dtype=np.int64).reshape(-1)
    image_indices = np.asarray(image_indices, dtype=np.int64).reshape(-1)
    if extracted is None:
        extracted = np.ones((number_of_images,), dtype=bool)

    raw = raw_counts[extracted]
    taken = np.bincount(image_indices, minlength=number_of_images)[extracted]

    return LearningStatistics(
        total_number_of_images=int(number_of_images),
        total_number_of_descriptors=int(raw.sum()),
        total_number_of_descriptors_per_image=NormalEstimate.estimate(raw),
        total_number_of_descriptors_per_image_range=IntRange.of(raw),
        number_of_images_taken=int(np.count_nonzero(taken)),
        number_of_descriptors_taken=int(image_indices.size),
        number_of_descriptors_taken_per_image=NormalEstimate.estimate(taken),
        number_of_descriptors_taken_per_image_range=IntRange.of(taken),
    )
