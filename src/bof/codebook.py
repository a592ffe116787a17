# bof/codebook.py
# -*- coding: utf-8 -*-

"""
Bag-of-Visual-Words Codebook 모듈.

- ClusteringEngine.learn() 이 반환하는 학습 결과물(시각 단어 codebook).
- 각 descriptor를 가까운 centroid(시각 단어)에 매핑하기 위해 decide() 사용.
- 학습 이후에는 변경되지 않는다(frozen). 여러 transform 호출에서 재사용 가능.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass(frozen=True)
class VisualCodebook:
    """
    학습된 Visual Codebook (Bag-of-Visual-Words의 핵심 구성 요소)

    Attributes:
        model (Any): predict()/transform()/cluster_centers_ 를 제공하는
            학습 완료된 sklearn 군집 모델(KMeans, MiniBatchKMeans).
    """

    model: Any

    # ----------------------------------------------------------------------
    # Codebook 정보
    # ----------------------------------------------------------------------
    @property
    def number_of_words(self) -> int:
        """실제로 학습된 시각 단어(centroid) 개수 K."""
        return int(self.model.cluster_centers_.shape[0])

    @property
    def descriptor_size(self) -> int:
        """descriptor 차원 D."""
        return int(self.model.cluster_centers_.shape[1])

    @property
    def centroids(self) -> np.ndarray:
        """(K, D) centroid 행렬의 복사본."""
        return np.array(self.model.cluster_centers_, copy=True)

    # ----------------------------------------------------------------------
    # Codebook → 각 descriptor의 cluster index 할당
    # ----------------------------------------------------------------------
    def decide(self, descriptors: np.ndarray) -> np.ndarray:
        """
        각 descriptor를 가장 가까운 centroid에 할당하여
        시각 단어 index를 반환한다.

        Args:
            descriptors (np.ndarray): (N, D) descriptor 행렬.

        Returns:
            np.ndarray: (N,) int64 cluster index, 값의 범위는 [0, K).
                N=0 이면 빈 배열.
        """
        descriptors = self._check(descriptors)
        if descriptors.shape[0] == 0:
            return np.zeros((0,), dtype=np.int64)

        return self.model.predict(descriptors).astype(np.int64)

    # ----------------------------------------------------------------------
    # descriptor → distances (KMeans.transform)
    # ----------------------------------------------------------------------
    def distances(self, descriptors: np.ndarray) -> np.ndarray:
        """
        각 descriptor에 대해 centroid와의 거리 벡터를 반환한다.

        Args:
            descriptors (np.ndarray): (N, D)

        Returns:
            np.ndarray: (N, K) distance matrix
        """
        descriptors = self._check(descriptors)
        if descriptors.shape[0] == 0:
            return np.zeros((0, self.number_of_words), dtype=np.float64)

        return self.model.transform(descriptors)

    def _check(self, descriptors: np.ndarray) -> np.ndarray:
        descriptors = np.asarray(descriptors, dtype=np.float32)
        if descriptors.ndim != 2:
            raise ValueError("descriptors must be 2D array: shape (N, D)")
        if descriptors.shape[0] > 0 and descriptors.shape[1] != self.descriptor_size:
            raise ValueError(f"Expected D={self.descriptor_size}, but got {descriptors.shape[1]}.")
        return descriptors
