from __future__ import annotations

import hashlib
import random


ADJECTIVES = (
    "Pejuang", "Pencari", "Cahaya", "Bintang", "Embun",
    "Gema", "Lentera", "Penjaga", "Penyemai", "Pemuda",
    "Mutiara", "Sahabat", "Hamba", "Pecinta", "Sinar",
    "Tunas", "Langkah", "Zikir", "Doa", "Iman",
)

NOUNS = (
    "Ikhlas", "Taqwa", "Ramadhan", "Pahala", "Surga",
    "Kebaikan", "Sabar", "Syukur", "Hidayah", "Berkah",
    "Mulia", "Sholeh", "Istiqomah", "Sunnah", "Umat",
    "Langit", "Fajar", "Senja", "Rahmat", "Cinta",
)


def generate_pseudonym(rng: random.Random | None = None) -> str:
    r = rng or random.Random()
    adj = r.choice(ADJECTIVES)
    noun = r.choice(NOUNS)
    return f"{adj} {noun} {r.randrange(999):03d}"


def anonymous_label(user_id: str) -> str:
    """Stable fallback label for users without a pseudonym."""
    digest = hashlib.sha256(str(user_id).encode("utf-8")).hexdigest()
    return f"Hamba Allah #{int(digest[:8], 16) % 10000:04d}"
