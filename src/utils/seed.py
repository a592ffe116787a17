from __future__ import annotations

import random

import numpy as np


def seed_everything(seed: int = 2025) -> None:
    """
    Python, NumPy 의 랜덤 시드를 모두 고정한다.

    Args:
        seed (int): 시드 값

    Notes:
        descriptor 샘플링은 BagOfVisualWords 내부의 Generator 를 따로 사용하므로,
        완전한 재현성을 원하면 config.seed 도 함께 지정해야 한다.
    """
    random.seed(seed)
    np.random.seed(seed)
