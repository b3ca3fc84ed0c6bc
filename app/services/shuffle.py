"""
app.services.shuffle
~~~~~~~~~~~~~~~~~~~~

Fisher–Yates 洗牌工具。纯函数，不修改入参。
"""
from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def fisher_yates(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """返回 ``items`` 的一个均匀随机排列（新列表）。

    Args:
        items: 待洗的序列，不会被修改。
        rng: 随机源；测试中传入带种子的 ``random.Random`` 以获得可复现结果。
    """
    rng = rng or random.Random()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
