"""
Bag-of-Visual-Words 모델

- learn(): 이미지(경로/배열/버퍼) 또는 descriptor 배열로부터 K개의 시각 단어 codebook 학습.
- transform(): 이미지 한 장 → (K,) histogram, 이미지 목록 → (M, K) histogram 행렬.
- 입력 형태별 메서드(learn_paths, transform_images 등)는 입력을 descriptor 로 바꾸는
    얇은 adapter 이며, 핵심 로직은 descriptor 기준의 _learn / _accumulate 하나뿐이다.

흐름:
    learn:     이미지 → DescriptorSampler(병렬 검출 + 상한 적용) → ClusteringEngine → VisualCodebook
    transform: 이미지 → Detector → descriptor → VisualCodebook.decide → BoFEncoder(histogram 누적)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence

import numpy as np

from bof.clustering import ClusteringEngine
from bof.codebook import VisualCodebook
from bof.encoder import BoFEncoder, check_histogram_dtype
from bof.errors import DimensionMismatchError, InsufficientDataError, NotFittedError
from bof.parallel import parallel_for
from bof.sampler import DescriptorSampler
from bof.statistics import LearningStatistics, compute_statistics
from features.detectors import FeatureDetector
from utils.io import decode_image, load_color

logger = logging.getLogger("bovw_logger")

# ---------------------------------------------------------------------------
# 🔵 입력 형태별 adapter: (항목, detector) → (N, D) descriptor
# ---------------------------------------------------------------------------


def _detect(image: np.ndarray, detector: FeatureDetector) -> np.ndarray:
    _, descriptors = detector.detect(image)
    return descriptors


def _extract_path(path: Any, detector: FeatureDetector) -> np.ndarray:
    return _detect(load_color(path), detector)


def _extract_buffer(buffer: Any, detector: FeatureDetector) -> np.ndarray:
    return _detect(decode_image(buffer), detector)


def _extract_image(image: Any, detector: FeatureDetector) -> np.ndarray:
    return _detect(np.asarray(image), detector)


_EXTRACTORS: Dict[str, Callable[[Any, FeatureDetector], np.ndarray]] = {
    "path": _extract_path,
    "buffer": _extract_buffer,
    "image": _extract_image,
}


def _input_kind(item: Any) -> str:
    """단일 입력 항목의 종류(path/buffer/image)를 판별한다."""
    if isinstance(item, (str, Path)):
        return "path"
    if isinstance(item, (bytes, bytearray, memoryview)):
        return "buffer"
    if isinstance(item, np.ndarray):
        return "image"
    raise TypeError(f"지원하지 않는 입력 타입입니다: {type(item).__name__}")


def _batch_kind(items: Sequence[Any]) -> str:
    """목록 입력의 종류를 판별한다. 모든 항목이 같은 종류여야 한다."""
    kinds = {_input_kind(item) for item in items}
    if len(kinds) > 1:
        raise TypeError(f"입력 목록에 서로 다른 타입이 섞여 있습니다: {sorted(kinds)}")
    return kinds.pop() if kinds else "image"


class BagOfVisualWords:
    """
    Bag-of-Visual-Words 모델.

    Args:
        detector (FeatureDetector): 이미지 → KeyPoint/descriptor 검출기.
        clustering (ClusteringEngine): descriptor 풀 → codebook 군집화 엔진.
            요청 단어 수는 clustering.number_of_words.
        number_of_descriptors (int): 학습에 사용할 전역 descriptor 수 상한. 0 = 제한 없음.
        max_descriptors_per_image (int): 이미지별 descriptor 수 상한. 0 = 제한 없음.
        parallelism (Optional[int]): 이미지 단위 worker 수. 1 = 순차, None = CPU 코어 수.
        seed (Optional[int]): descriptor 샘플링 시드.

    Notes:
        - number_of_words / number_of_inputs / number_of_outputs 는 읽기 전용이다.
        - 학습 결과(codebook)는 learn 호출마다 새로 만들어지고 이후 변경되지 않는다.
    """

    def __init__(
        self,
        detector: FeatureDetector,
        clustering: ClusteringEngine,
        number_of_descriptors: int = 0,
        max_descriptors_per_image: int = 0,
        parallelism: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> None:
        self._detector = detector
        self._clustering = clustering
        self.number_of_descriptors = number_of_descriptors
        self.max_descriptors_per_image = max_descriptors_per_image
        self.parallelism = parallelism
        self.seed = seed

        self._codebook: Optional[VisualCodebook] = None
        self._number_of_words = 0
        self._statistics: Optional[LearningStatistics] = None

    # ----------------------------------------------------------------------
    # 읽기 전용 속성
    # ----------------------------------------------------------------------
    @property
    def detector(self) -> FeatureDetector:
        return self._detector

    @property
    def clustering(self) -> ClusteringEngine:
        return self._clustering

    @property
    def codebook(self) -> Optional[VisualCodebook]:
        return self._codebook

    @property
    def number_of_words(self) -> int:
        """학습된 시각 단어 수 K. 학습 전에는 0."""
        return self._number_of_words

    @property
    def number_of_inputs(self) -> int:
        """입력 크기가 이미지마다 다르므로 항상 -1."""
        return -1

    @property
    def number_of_outputs(self) -> int:
        """출력 histogram 길이 (= number_of_words)."""
        return self._number_of_words

    @property
    def statistics(self) -> Optional[LearningStatistics]:
        """마지막 learn 호출의 통계. 학습 전에는 None."""
        return self._statistics

    @property
    def is_fitted(self) -> bool:
        return self._codebook is not None

    # ----------------------------------------------------------------------
    # Learn
    # ----------------------------------------------------------------------
    def learn(self, x: Any, weights: Optional[Sequence[float]] = None) -> "BagOfVisualWords":
        """
        입력 형태에 맞는 learn_* 메서드로 위임한다.

        Args:
            x: (N, D) descriptor 배열 또는 (D,) descriptor 벡터의 목록,
                또는 이미지 경로/이미지 배열/인코딩 버퍼의 목록.
            weights (Optional[Sequence[float]]): descriptor 배열이면 descriptor 별,
                이미지 목록이면 이미지별 가중치.

        Returns:
            BagOfVisualWords: 학습된 자기 자신.
        """
        if isinstance(x, np.ndarray):
            return self.learn_descriptors(x, weights)

        items = list(x)
        # 1D 벡터 목록은 이미 추출된 descriptor 로 본다.
        if items and all(isinstance(item, np.ndarray) and item.ndim == 1 for item in items):
            return self.learn_descriptors(np.vstack(items), weights)

        kind = _batch_kind(items)
        return self._learn_items(items, weights, _EXTRACTORS[kind])

    def learn_descriptors(
        self,
        descriptors: np.ndarray,
        weights: Optional[Sequence[float]] = None,
    ) -> "BagOfVisualWords":
        """
        이미 추출된 descriptor 배열로 바로 codebook 을 학습한다. (검출 생략)

        Args:
            descriptors (np.ndarray): (N, D) descriptor 배열.
            weights (Optional[Sequence[float]]): (N,) descriptor 별 가중치.

        Raises:
            DimensionMismatchError: weights 길이가 N 과 다를 때.
            InsufficientDataError: N <= 요청 단어 수일 때.
        """
        self._statistics = None
        descriptors = np.asarray(descriptors, dtype=np.float32)
        if descriptors.ndim != 2:
            raise ValueError("descriptors must be 2D array: shape (N, D)")

        sample_weights = None
        if weights is not None:
            sample_weights = np.asarray(weights, dtype=np.float64).reshape(-1)
            if sample_weights.shape[0] != descriptors.shape[0]:
                raise DimensionMismatchError(
                    f"weights 길이({sample_weights.shape[0]})가 descriptor 수({descriptors.shape[0]})와 같아야 합니다."
                )

        count = int(descriptors.shape[0])
        self._statistics = LearningStatistics(
            total_number_of_descriptors=count,
            number_of_descriptors_taken=count,
        )
        return self._learn(descriptors, sample_weights)

    def learn_paths(self, paths: Sequence[Any], weights: Optional[Sequence[float]] = None) -> "BagOfVisualWords":
        """이미지 파일 경로 목록으로 학습한다."""
        return self._learn_items(list(paths), weights, _extract_path)

    def learn_images(self, images: Sequence[np.ndarray], weights: Optional[Sequence[float]] = None) -> "BagOfVisualWords":
        """메모리 상의 이미지 배열 목록으로 학습한다."""
        return self._learn_items(list(images), weights, _extract_image)

    def learn_buffers(self, buffers: Sequence[bytes], weights: Optional[Sequence[float]] = None) -> "BagOfVisualWords":
        """인코딩된 이미지 버퍼(PNG/JPEG bytes) 목록으로 학습한다."""
        return self._learn_items(list(buffers), weights, _extract_buffer)

    def _learn_items(
        self,
        items: Sequence[Any],
        weights: Optional[Sequence[float]],
        extract: Callable[[Any, FeatureDetector], np.ndarray],
    ) -> "BagOfVisualWords":
        self._statistics = None
        logger.info("[BoVW] learn 시작: images=%d, K(requested)=%d", len(items), self._clustering.number_of_words)

        sampler = DescriptorSampler(
            detector=self._detector,
            number_of_descriptors=self.number_of_descriptors,
            max_descriptors_per_image=self.max_descriptors_per_image,
            parallelism=self.parallelism,
            seed=self.seed,
        )
        sampled = sampler.sample(items, extract, weights)

        self._statistics = compute_statistics(
            raw_counts=sampled.raw_counts,
            image_indices=sampled.image_indices,
            number_of_images=sampled.number_of_images,
            extracted=sampled.extracted,
        )
        logger.info("[BoVW] statistics: %s", self._statistics)

        return self._learn(sampled.descriptors, sampled.weights)

    def _learn(self, descriptors: np.ndarray, weights: Optional[np.ndarray]) -> "BagOfVisualWords":
        requested = int(self._clustering.number_of_words)
        if descriptors.shape[0] <= requested:
            raise InsufficientDataError(
                f"군집화에 필요한 descriptor 가 부족합니다: descriptors={descriptors.shape[0]}, "
                f"요청 단어 수={requested}. descriptor 수가 단어 수보다 많아야 합니다."
            )

        codebook = self._clustering.learn(descriptors, weights)
        self._codebook = codebook
        self._number_of_words = codebook.number_of_words

        logger.info("[BoVW] codebook 학습 완료: descriptors=%d, K=%d", descriptors.shape[0], self._number_of_words)
        return self

    # ----------------------------------------------------------------------
    # Transform
    # ----------------------------------------------------------------------
    def transform(self, x: Any, dtype: Any = np.float64) -> np.ndarray:
        """
        이미지 한 장 또는 이미지 목록을 BoVW histogram 으로 변환한다.

        Args:
            x: 이미지 경로 / 이미지 배열 / 인코딩 버퍼 한 개 → (K,) histogram,
                또는 이들의 list/tuple → (M, K) histogram 행렬.
            dtype: histogram 원소 타입. np.float64(기본) 또는 np.int32 등 정수 타입.

        Returns:
            np.ndarray: (K,) 또는 (M, K) histogram.
        """
        if isinstance(x, (str, Path, bytes, bytearray, memoryview, np.ndarray)):
            kind = _input_kind(x)
            descriptors = _EXTRACTORS[kind](x, self._detector)
            return self.transform_descriptors(descriptors, dtype=dtype)

        items = list(x)
        return self._transform_items(items, _EXTRACTORS[_batch_kind(items)], dtype)

    def transform_descriptors(
        self,
        descriptors: np.ndarray,
        dtype: Any = np.float64,
        out: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        이미지 한 장의 descriptor 를 (K,) histogram 으로 변환한다.

        Args:
            descriptors (np.ndarray): (N, D). N=0 이면 0 벡터.
            dtype: histogram 원소 타입.
            out (Optional[np.ndarray]): 누적할 (K,) 버퍼. 주어지면 dtype 은 무시.

        Returns:
            np.ndarray: (K,) histogram. h[j] = 단어 j 에 할당된 descriptor 수.
        """
        codebook = self._require_codebook()
        encoder = BoFEncoder(k=self._number_of_words, dtype=out.dtype if out is not None else dtype)
        return encoder.encode(codebook.decide(descriptors), out=out)

    def transform_paths(self, paths: Sequence[Any], dtype: Any = np.float64) -> np.ndarray:
        """이미지 파일 경로 목록 → (M, K) histogram."""
        return self._transform_items(list(paths), _extract_path, dtype)

    def transform_images(self, images: Sequence[np.ndarray], dtype: Any = np.float64) -> np.ndarray:
        """이미지 배열 목록 → (M, K) histogram."""
        return self._transform_items(list(images), _extract_image, dtype)

    def transform_buffers(self, buffers: Sequence[bytes], dtype: Any = np.float64) -> np.ndarray:
        """인코딩 버퍼 목록 → (M, K) histogram."""
        return self._transform_items(list(buffers), _extract_buffer, dtype)

    def _transform_items(
        self,
        items: Sequence[Any],
        extract: Callable[[Any, FeatureDetector], np.ndarray],
        dtype: Any,
    ) -> np.ndarray:
        codebook = self._require_codebook()
        encoder = BoFEncoder(k=self._number_of_words, dtype=check_histogram_dtype(dtype))
        result = encoder.zeros(len(items))

        # 이미지 단위 병렬화: 각 worker 는 자기 이미지의 행(result[i])에만 쓴다
        def process(i: int, detector: FeatureDetector) -> None:
            encoder.encode(codebook.decide(extract(items[i], detector)), out=result[i])

        parallel_for(len(items), self._detector, process, self.parallelism)
        logger.debug("[BoVW] transform 완료: images=%d, K=%d", len(items), self._number_of_words)
        return result

    def _require_codebook(self) -> VisualCodebook:
        if self._codebook is None:
            raise NotFittedError("BagOfVisualWords is not trained. Call learn() first.")
        return self._codebook

    def __repr__(self) -> str:
        return (
            f"BagOfVisualWords(detector={type(self._detector).__name__}, "
            f"clustering={type(self._clustering).__name__}, number_of_words={self._number_of_words}, "
            f"number_of_descriptors={self.number_of_descriptors}, "
            f"max_descriptors_per_image={self.max_descriptors_per_image}, parallelism={self.parallelism})"
        )
