"""
Clustering Engine

- descriptor 풀 (N, D) 과 선택적 sample weight 를 받아 K개의 시각 단어를 학습하고
    VisualCodebook 을 반환하는 공통 인터페이스.
- 군집화 내부의 병렬 처리/수렴 조건은 sklearn 에 맡긴다.
- 수렴 허용 오차(tolerance)는 각 엔진의 설정 필드로 직접 노출한다.

지원 엔진:
    - KMeans (sklearn.cluster.KMeans, k-means++ 초기화)
    - MiniBatchKMeans (sklearn.cluster.MiniBatchKMeans, 대규모 descriptor 풀용)
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import numpy as np
from sklearn.cluster import KMeans, MiniBatchKMeans

from bof.codebook import VisualCodebook

logger = logging.getLogger("bovw_logger")

# ---------------------------------------------------------------------------
# 🔵 Base Interface
# ---------------------------------------------------------------------------


class ClusteringEngine(abc.ABC):
    """
    BagOfVisualWords 가 사용하는 군집화 엔진 인터페이스.

    Attributes:
        number_of_words (int): 요청하는 시각 단어 수 K.
    """

    number_of_words: int

    @abc.abstractmethod
    def learn(self, descriptors: np.ndarray, weights: Optional[np.ndarray] = None) -> VisualCodebook:
        """
        descriptor 풀을 군집화하여 codebook 을 학습한다.

        Args:
            descriptors (np.ndarray): (N, D) descriptor 행렬.
            weights (Optional[np.ndarray]): (N,) descriptor 별 가중치.

        Returns:
            VisualCodebook: 학습된 codebook.
        """
        raise NotImplementedError


# ---------------------------------------------------------------------------
# 🔵 1. KMeans
# ---------------------------------------------------------------------------


@dataclass
class KMeansClustering(ClusteringEngine):
    """
    sklearn KMeans 기반 군집화 엔진.

    Attributes:
        number_of_words (int): 시각 단어(centroids) 개수.
        tolerance (float): 수렴 허용 오차 (KMeans tol).
        max_iter (int): 최대 반복 횟수.
        n_init (Union[int, str]): 초기화 반복 횟수. 대규모 데이터에서는 "auto"가 안정적.
        seed (Optional[int]): random_state.
    """

    number_of_words: int
    tolerance: float = 1e-4
    max_iter: int = 300
    n_init: Union[int, str] = "auto"
    seed: Optional[int] = 2025

    def build_model(self) -> Any:
        return KMeans(
            n_clusters=self.number_of_words,
            init="k-means++",
            n_init=self.n_init,
            max_iter=self.max_iter,
            tol=self.tolerance,
            verbose=False,
            random_state=self.seed,
        )

    def learn(self, descriptors: np.ndarray, weights: Optional[np.ndarray] = None) -> VisualCodebook:
        """
        KMeans 군집화를 통해 시각 단어 codebook을 생성한다.

        Notes:
            - whiten 처리(pca whitening)는 learn 전에 외부에서 수행해야 함.
        """
        if descriptors.ndim != 2:
            raise ValueError("descriptors must be 2D array: shape (N, D)")

        model = self.build_model()
        logger.debug(
            "[Clustering] %s fit: N=%d, D=%d, K=%d",
            type(model).__name__,
            descriptors.shape[0],
            descriptors.shape[1],
            self.number_of_words,
        )
        model.fit(descriptors, sample_weight=weights)
        return VisualCodebook(model=model)


# ---------------------------------------------------------------------------
# 🔵 2. MiniBatchKMeans
# ---------------------------------------------------------------------------


@dataclass
class MiniBatchKMeansClustering(KMeansClustering):
    """
    sklearn MiniBatchKMeans 기반 군집화 엔진.

    Attributes:
        batch_size (int): mini-batch 크기.
        n_init (Union[int, str]): MiniBatchKMeans 는 보통 1~3 이면 충분.
    """

    max_iter: int = 100
    n_init: Union[int, str] = 3
    batch_size: int = 1024 * 4

    def build_model(self) -> Any:
        return MiniBatchKMeans(
            n_clusters=self.number_of_words,
            init="k-means++",
            n_init=self.n_init,
            max_iter=self.max_iter,
            tol=self.tolerance,
            batch_size=self.batch_size,
            verbose=0,
            random_state=self.seed,
        )


# ---------------------------------------------------------------------------
# 🔵 3. Factory: 문자열로 엔진 생성
# ---------------------------------------------------------------------------


def create_clustering(kind: str, number_of_words: int, **params: Any) -> ClusteringEngine:
    """
    문자열로 군집화 엔진을 생성하는 팩토리 함수.

    Args:
        kind (str): {"kmeans", "minibatch"}
        number_of_words (int): 시각 단어 수 K
        **params: 엔진 dataclass 의 나머지 필드 값

    Returns:
        ClusteringEngine: KMeansClustering / MiniBatchKMeansClustering
    """
    assert number_of_words > 0, f"number_of_words 는 양수여야 합니다: {number_of_words}"

    if kind == "kmeans":
        return KMeansClustering(number_of_words=number_of_words, **params)
    if kind == "minibatch":
        return MiniBatchKMeansClustering(number_of_words=number_of_words, **params)
    raise ValueError(f"Unsupported clustering type: {kind}")
