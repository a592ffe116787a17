from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Sequence

import numpy as np


@dataclass
class BoFEncoder:
    """
    Bag-of-Features 인코더.

    Codebook.decide(descriptors) 결과인 시각 단어 index (N,) 를 받아
    BoF histogram(K,) 을 생성한다.

    Attributes:
        k (int): 시각 단어(centroid) 개수.
        normalize (Literal["l1", "l2", None]): BoW 정규화 방식. None 이면 개수 그대로.
        dtype (np.dtype): histogram 원소 타입. 정수(int32) 또는 실수(float64).
    """

    k: int
    normalize: Literal["l1", "l2", None] = None
    dtype: np.dtype = np.float64

    def __post_init__(self) -> None:
        self.dtype = check_histogram_dtype(self.dtype)
        if self.normalize is not None and self.dtype.kind != "f":
            raise ValueError(f"normalize={self.normalize} requires a floating dtype, got {self.dtype}")

    # -----------------------------------------------------------------------
    def encode(self, cluster_ids: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        시각 단어 index 로부터 단일 이미지의 Bag-of-Features 벡터를 생성.

        Args:
            cluster_ids (np.ndarray): (N,) shape, 값의 범위는 [0, K).
            out (Optional[np.ndarray]): 누적할 (K,) 버퍼. 배치 처리 시 결과 행렬의 한 행.
                None 이면 0 으로 초기화한 새 버퍼를 만든다.

        Returns:
            np.ndarray: (K,) histogram vector. descriptor 가 없으면 0 벡터.

        Notes:
            - np.add.at 은 unbuffered 연산이라 같은 index 가 여러 번 나와도 모두 누적된다.
              (hist[ids] += 1 은 중복 index 를 한 번만 센다)
        """
        cluster_ids = np.asarray(cluster_ids, dtype=np.int64).reshape(-1)
        if cluster_ids.size and (cluster_ids.min() < 0 or cluster_ids.max() >= self.k):
            raise ValueError(f"cluster index must be in [0, {self.k}), got [{cluster_ids.min()}, {cluster_ids.max()}]")

        if out is None:
            out = np.zeros((self.k,), dtype=self.dtype)
        elif out.shape != (self.k,):
            raise ValueError(f"Expected output shape ({self.k},), but got {out.shape}.")

        np.add.at(out, cluster_ids, 1)

        if self.normalize is not None:
            out[...] = self._normalize(out)

        return out

    # -----------------------------------------------------------------------
    def encode_batch(self, batch_ids: Sequence[np.ndarray]) -> np.ndarray:
        """
        다수 이미지의 시각 단어 index 를 일괄 BoF histogram 으로 변환한다.

        Args:
            batch_ids (Sequence[np.ndarray]): 길이 M 리스트, 각 요소는 (Ni,) index 배열.

        Returns:
            np.ndarray: (M, K) BoF 행렬.
        """
        result = self.zeros(len(batch_ids))
        for i, ids in enumerate(batch_ids):
            self.encode(ids, out=result[i])
        return result

    def zeros(self, count: int) -> np.ndarray:
        """(count, K) 0 행렬을 만든다. 각 행은 이미지 한 장의 histogram 버퍼."""
        return np.zeros((count, self.k), dtype=self.dtype)

    # -----------------------------------------------------------------------
    def _normalize(self, vec: np.ndarray) -> np.ndarray:
        """
        벡터 정규화(L1 또는 L2).

        Args:
            vec (np.ndarray): (K,) 벡터.

        Returns:
            np.ndarray: 정규화된 벡터.
        """
        v = vec.astype(np.float64)

        if self.normalize == "l1":
            s = float(v.sum()) + 1e-6
            return v / s

        if self.normalize == "l2":
            n = float(np.linalg.norm(v)) + 1e-6
            return v / n

        raise ValueError(f"Unsupported normalize={self.normalize}")


def check_histogram_dtype(dtype: np.dtype) -> np.dtype:
    """histogram dtype 이 정수/실수 타입인지 검사한다."""
    dtype = np.dtype(dtype)
    if dtype.kind not in ("i", "u", "f"):
        raise TypeError(f"histogram dtype must be integer or floating, got {dtype}")
    return dtype

