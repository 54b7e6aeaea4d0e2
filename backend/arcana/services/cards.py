"""Major arcana catalog and random draws."""

import random
from typing import Any

# (id, name, english name)
MAJOR_ARCANA: tuple[tuple[int, str, str], ...] = (
    (0, "愚者", "The Fool"),
    (1, "魔术师", "The Magician"),
    (2, "女祭司", "The High Priestess"),
    (3, "皇后", "The Empress"),
    (4, "皇帝", "The Emperor"),
    (5, "教皇", "The Hierophant"),
    (6, "恋人", "The Lovers"),
    (7, "战车", "The Chariot"),
    (8, "力量", "Strength"),
    (9, "隐者", "The Hermit"),
    (10, "命运之轮", "Wheel of Fortune"),
    (11, "正义", "Justice"),
    (12, "倒吊人", "The Hanged Man"),
    (13, "死神", "Death"),
    (14, "节制", "Temperance"),
    (15, "恶魔", "The Devil"),
    (16, "高塔", "The Tower"),
    (17, "星星", "The Star"),
    (18, "月亮", "The Moon"),
    (19, "太阳", "The Sun"),
    (20, "审判", "Judgement"),
    (21, "世界", "The World"),
)


def _card(card_id: int, name: str, english_name: str) -> dict[str, Any]:
    return {
        "id": card_id,
        "name": name,
        "englishName": english_name,
        "imageUrl": f"/static/cards/major_{card_id:02d}.jpg",
    }


def all_cards() -> list[dict[str, Any]]:
    return [_card(*entry) for entry in MAJOR_ARCANA]


def random_cards(count: int = 3, rng: random.Random | None = None) -> list[dict[str, Any]]:
    """Draw distinct cards, each independently upright or reversed."""
    rng = rng or random.SystemRandom()
    count = max(1, min(count, len(MAJOR_ARCANA)))
    return [
        {**_card(*entry), "isReversed": rng.random() > 0.5}
        for entry in rng.sample(MAJOR_ARCANA, count)
    ]
