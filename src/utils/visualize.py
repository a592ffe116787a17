from __future__ import annotations

from pathlib import Path
from typing import Tuple

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np


def save_histogram(
    vec: np.ndarray,
    save_path: str | Path,
    title: str,
    figsize: Tuple[int, int] = (6, 3),
) -> None:
    """BoVW 히스토그램을 막대 그래프로 저장한다.

    Args:
        vec (np.ndarray): 시각화할 히스토그램 벡터.
        save_path (str | Path): 저장 경로.
        title (str): 그래프 제목(이미지 이름 등).
        figsize (Tuple[int, int]): 그래프 크기 설정.
    """
    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    plt.figure(figsize=figsize)
    plt.bar(np.arange(len(vec)), vec, color="steelblue")
    plt.title(title)
    plt.xlabel("Visual Word Index")
    plt.ylabel("Frequency")
    plt.tight_layout()
    plt.savefig(save_path)
    plt.close()


def save_count_distribution(
    counts: np.ndarray,
    save_path: str | Path,
    title: str = "Descriptors per Image",
    bins: int = 30,
    figsize: Tuple[int, int] = (7, 4),
) -> None:
    """이미지별 descriptor 수 분포를 히스토그램으로 저장한다.

    Args:
        counts (np.ndarray): 이미지별 descriptor 수.
        save_path (str | Path): 저장 경로.
        title (str): 그래프 제목.
        bins (int): 히스토그램 bin 개수.
        figsize (Tuple[int, int]): 그래프 크기 설정.
    """
    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    plt.figure(figsize=figsize)
    plt.hist(counts, bins=bins, color="steelblue")
    plt.axvline(float(np.median(counts)) if len(counts) else 0.0, color="tomato", linestyle="--", label="median")
    plt.title(title)
    plt.xlabel("Number of Descriptors")
    plt.ylabel("Number of Images")
    plt.legend()
    plt.tight_layout()
    plt.savefig(save_path)
    plt.close()
