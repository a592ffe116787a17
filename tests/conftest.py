from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
import pytest

from bof.clustering import KMeansClustering
from bof.codebook import VisualCodebook
from features.detectors import FeatureDetector

CENTERS = np.array([[0.0, 0.0], [10.0, 0.0], [0.0, 10.0], [10.0, 10.0]], dtype=np.float32)


class DetectorLog:
    """원본 detector 와 모든 clone 이 공유하는 호출 기록."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.detect_calls = 0
        self.clones = 0
        self.closes = 0

    def bump(self, name: str) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + 1)


class SyntheticDetector(FeatureDetector):
    """
    (N, 2) 배열 자체를 "이미지"로 보고, 각 행을 keypoint 의 descriptor 로 돌려주는 Detector.

    Args:
        log (DetectorLog): 호출 횟수 기록.
        fail_on_size (Optional[int]): 행 수가 이 값인 이미지에서 RuntimeError 발생.
    """

    descriptor_size = 2

    def __init__(self, log: Optional[DetectorLog] = None, fail_on_size: Optional[int] = None) -> None:
        self.log = log or DetectorLog()
        self.fail_on_size = fail_on_size
        self.closed = False

    def detect(self, image: np.ndarray) -> Tuple[List[Tuple[float, float]], np.ndarray]:
        assert not self.closed, "closed detector used"
        self.log.bump("detect_calls")
        if self.fail_on_size is not None and image.shape[0] == self.fail_on_size:
            raise RuntimeError(f"detector failure on image with {image.shape[0]} rows")
        descriptors = np.asarray(image, dtype=np.float32).reshape(-1, 2)
        keypoints = [(float(x), float(y)) for x, y in descriptors]
        return keypoints, descriptors

    def clone(self) -> "SyntheticDetector":
        self.log.bump("clones")
        return SyntheticDetector(log=self.log, fail_on_size=self.fail_on_size)

    def close(self) -> None:
        self.closed = True
        self.log.bump("closes")


@dataclass
class CountingClustering(KMeansClustering):
    """KMeansClustering + learn 호출 횟수 기록."""

    n_init: int = 1
    calls: int = field(default=0)

    def learn(self, descriptors: np.ndarray, weights: Optional[np.ndarray] = None) -> VisualCodebook:
        self.calls += 1
        return super().learn(descriptors, weights)


def make_images(num_images: int = 10, per_image: int = 20, seed: int = 0) -> List[np.ndarray]:
    """4개 중심 주변에 모인 2차원 descriptor 를 가진 합성 이미지 목록을 만든다."""
    rng = np.random.default_rng(seed)
    images = []
    for _ in range(num_images):
        labels = rng.integers(0, len(CENTERS), size=per_image)
        images.append((CENTERS[labels] + rng.normal(scale=0.5, size=(per_image, 2))).astype(np.float32))
    return images


@pytest.fixture
def detector_log() -> DetectorLog:
    return DetectorLog()


@pytest.fixture
def detector(detector_log: DetectorLog) -> SyntheticDetector:
    return SyntheticDetector(log=detector_log)


@pytest.fixture
def images() -> List[np.ndarray]:
    return make_images()


@pytest.fixture
def clustering() -> CountingClustering:
    return CountingClustering(number_of_words=4, seed=0)
