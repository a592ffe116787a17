"""
Feature Detector Adapter

- 이미지 한 장 → (KeyPoint 리스트, (N, D) 디스크립터 행렬) 을 돌려주는 공통 인터페이스.
- OpenCV Feature2D 객체는 thread-safe 하다고 가정할 수 없으므로,
    병렬 처리 시 worker 마다 clone() 으로 독립 인스턴스를 만들어 사용한다.
- clone 은 사용이 끝나면 close() 로 정리한다. (with 문 지원)

지원 Detector:
    - SIFT (cv2.SIFT_create)
    - ORB (cv2.ORB_create)
    - Grid SIFT (격자 키포인트 + SIFT descriptor, Dense SIFT 유사)
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, List, Tuple

import cv2
import numpy as np

from features.descriptors import compute_keypoint_descriptors
from features.patch import grid_keypoints

# ---------------------------------------------------------------------------
# 🔵 Base Interface
# ---------------------------------------------------------------------------


class FeatureDetector(abc.ABC):
    """
    BoVW 가 사용하는 Detector 공통 인터페이스.

    - detect(): 이미지 한 장에서 KeyPoint 와 디스크립터 추출
    - clone(): 동시에 사용할 수 있는 독립 인스턴스 생성
    - close(): clone 이 점유한 자원 해제
    """

    #: 디스크립터 차원(D)
    descriptor_size: int = 0

    @abc.abstractmethod
    def detect(self, image: np.ndarray) -> Tuple[List[Any], np.ndarray]:
        """
        이미지에서 KeyPoint 와 디스크립터를 추출한다.

        Returns:
            Tuple[List[Any], np.ndarray]: KeyPoint 리스트, (N, D) 디스크립터.
                i 번째 행이 i 번째 KeyPoint 의 디스크립터.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def clone(self) -> "FeatureDetector":
        """같은 설정의 독립 Detector 인스턴스를 반환한다."""
        raise NotImplementedError

    def close(self) -> None:
        """clone 이 점유한 자원을 해제한다. 기본 구현은 아무것도 하지 않는다."""

    def __enter__(self) -> "FeatureDetector":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


# ---------------------------------------------------------------------------
# 🔵 1. SIFT Detector
# ---------------------------------------------------------------------------


@dataclass
class SIFTDetector(FeatureDetector):
    """
    OpenCV SIFT Detector Wrapper

    Attributes:
        n_features (int): 검출할 최대 특징점 수 (0 = 제한 없음)
        contrast_threshold (float): 저대비 특징점 제거 임계값
        edge_threshold (float): edge 응답 제거 임계값
    """

    n_features: int = 0
    contrast_threshold: float = 0.04
    edge_threshold: float = 10.0
    descriptor_size: int = field(default=128, init=False)
    _sift: Any = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._sift = cv2.SIFT_create(
            nfeatures=self.n_features,
            contrastThreshold=self.contrast_threshold,
            edgeThreshold=self.edge_threshold,
        )

    def detect(self, image: np.ndarray) -> Tuple[List[cv2.KeyPoint], np.ndarray]:
        return compute_keypoint_descriptors(self._sift, image, self.descriptor_size)

    def clone(self) -> "SIFTDetector":
        return SIFTDetector(
            n_features=self.n_features,
            contrast_threshold=self.contrast_threshold,
            edge_threshold=self.edge_threshold,
        )

    def close(self) -> None:
        self._sift = None


# ---------------------------------------------------------------------------
# 🔵 2. ORB Detector
# ---------------------------------------------------------------------------


@dataclass
class ORBDetector(FeatureDetector):
    """
    OpenCV ORB Detector Wrapper

    Attributes:
        n_features (int): 검출할 최대 특징점 수
    """

    n_features: int = 500
    descriptor_size: int = field(default=32, init=False)
    _orb: Any = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._orb = cv2.ORB_create(nfeatures=self.n_features)

    def detect(self, image: np.ndarray) -> Tuple[List[cv2.KeyPoint], np.ndarray]:
        return compute_keypoint_descriptors(self._orb, image, self.descriptor_size)

    def clone(self) -> "ORBDetector":
        return ORBDetector(n_features=self.n_features)

    def close(self) -> None:
        self._orb = None


# ---------------------------------------------------------------------------
# 🔵 3. Grid SIFT Detector
# ---------------------------------------------------------------------------


@dataclass
class GridSIFTDetector(FeatureDetector):
    """
    격자형 키포인트 위치에서 SIFT 디스크립터를 계산하는 Detector.

    Attributes:
        patch_hw (int): 패치 한 변의 길이. 값이 커질수록 receptive field가 확대된다.
        stride (int): 패치 추출 간격. stride가 작을수록 더 촘촘한 키포인트가 생성된다.
    """

    patch_hw: int = 32
    stride: int = 16
    descriptor_size: int = field(default=128, init=False)
    _sift: Any = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._sift = cv2.SIFT_create()

    def detect(self, image: np.ndarray) -> Tuple[List[cv2.KeyPoint], np.ndarray]:
        keypoints = grid_keypoints(image.shape, self.patch_hw, self.patch_hw, self.stride)
        return compute_keypoint_descriptors(self._sift, image, self.descriptor_size, keypoints)

    def clone(self) -> "GridSIFTDetector":
        return GridSIFTDetector(patch_hw=self.patch_hw, stride=self.stride)

    def close(self) -> None:
        self._sift = None


# ---------------------------------------------------------------------------
# 🔵 4. Factory: 문자열로 Detector 생성
# ---------------------------------------------------------------------------


def create_detector(kind: str, **params: Any) -> FeatureDetector:
    """
    문자열로 Detector 를 생성하는 팩토리 함수.

    Args:
        kind (str): {"sift", "orb", "grid_sift"}
        **params: 각 Detector dataclass 의 필드 값

    Returns:
        FeatureDetector: SIFTDetector / ORBDetector / GridSIFTDetector 중 하나

    Raises:
        ValueError: 지원하지 않는 kind 지정 시.
    """
    if kind == "sift":
        return SIFTDetector(**params)
    if kind == "orb":
        return ORBDetector(**params)
    if kind == "grid_sift":
        return GridSIFTDetector(**params)
    raise ValueError(f"Unsupported detector type: {kind}")
