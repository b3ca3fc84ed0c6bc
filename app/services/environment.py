"""
app.services.environment
~~~~~~~~~~~~~~~~~~~~~~~~

环境牌配方 —— 大事件牌、小事件牌、无效果牌的组合与洗牌。
"""
from __future__ import annotations

import random

from app.services.shuffle import fisher_yates

BIG_CARDS: tuple[str, ...] = ("暴风雪", "停电", "地震", "大雾", "洪水")
SMALL_CARD: str = "小插曲"
SMALL_CARD_COPIES: int = 3
NO_EFFECT_CARD: str = "风平浪静"
NO_EFFECT_CARD_COPIES: int = 4


def compose_environment_cards(
    mode: str, total_players: int, rng: random.Random | None = None,
) -> list[str]:
    """按模式与人数组合 8 张环境牌并洗好。

    - 普通模式 5 人局：1 张大事件 + 3 张小事件 + 4 张无效果
    - 其它配置：2 张不同的大事件 + 2 张小事件 + 4 张无效果
    """
    if mode == "normal" and total_players == 5:
        big_count, small_count = 1, SMALL_CARD_COPIES
    else:
        big_count, small_count = 2, 2

    big = fisher_yates(BIG_CARDS, rng)[:big_count]
    small = [SMALL_CARD] * small_count
    no_effect = [NO_EFFECT_CARD] * NO_EFFECT_CARD_COPIES
    return fisher_yates(big + small + no_effect, rng)
