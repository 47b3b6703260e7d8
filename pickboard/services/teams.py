# pickboard/services/teams.py
from __future__ import annotations

import re
from functools import lru_cache
from typing import Dict, List, Optional

TEAM_NAMES: Dict[str, str] = {
    "ARI": "Arizona Cardinals",
    "ATL": "Atlanta Falcons",
    "BAL": "Baltimore Ravens",
    "BUF": "Buffalo Bills",
    "CAR": "Carolina Panthers",
    "CHI": "Chicago Bears",
    "CIN": "Cincinnati Bengals",
    "CLE": "Cleveland Browns",
    "DAL": "Dallas Cowboys",
    "DEN": "Denver Broncos",
    "DET": "Detroit Lions",
    "GB": "Green Bay Packers",
    "HOU": "Houston Texans",
    "IND": "Indianapolis Colts",
    "JAX": "Jacksonville Jaguars",
    "KC": "Kansas City Chiefs",
    "LV": "Las Vegas Raiders",
    "LAC": "Los Angeles Chargers",
    "LAR": "Los Angeles Rams",
    "MIA": "Miami Dolphins",
    "MIN": "Minnesota Vikings",
    "NE": "New England Patriots",
    "NO": "New Orleans Saints",
    "NYG": "New York Giants",
    "NYJ": "New York Jets",
    "PHI": "Philadelphia Eagles",
    "PIT": "Pittsburgh Steelers",
    "SEA": "Seattle Seahawks",
    "SF": "San Francisco 49ers",
    "TB": "Tampa Bay Buccaneers",
    "TEN": "Tennessee Titans",
    "WAS": "Washington Commanders",
}

TEAM_CODES = tuple(TEAM_NAMES)

# Lowercase alias -> code. Insertion order is the substring-match order.
ALIASES: Dict[str, str] = {
    "arizona cardinals": "ARI", "cardinals": "ARI", "cards": "ARI",
    "atlanta falcons": "ATL", "falcons": "ATL",
    "baltimore ravens": "BAL", "ravens": "BAL",
    "buffalo bills": "BUF", "bills": "BUF",
    "carolina panthers": "CAR", "panthers": "CAR",
    "chicago bears": "CHI", "bears": "CHI",
    "cincinnati bengals": "CIN", "bengals": "CIN",
    "cleveland browns": "CLE", "browns": "CLE",
    "dallas cowboys": "DAL", "cowboys": "DAL",
    "denver broncos": "DEN", "broncos": "DEN",
    "detroit lions": "DET", "lions": "DET",
    "green bay packers": "GB", "packers": "GB",
    "houston texans": "HOU", "texans": "HOU",
    "indianapolis colts": "IND", "colts": "IND",
    "jacksonville jaguars": "JAX", "jaguars": "JAX", "jags": "JAX",
    "kansas city chiefs": "KC", "chiefs": "KC",
    "las vegas raiders": "LV", "raiders": "LV",
    "los angeles chargers": "LAC", "chargers": "LAC", "la chargers": "LAC",
    "los angeles rams": "LAR", "rams": "LAR", "la rams": "LAR",
    "miami dolphins": "MIA", "dolphins": "MIA", "fins": "MIA",
    "minnesota vikings": "MIN", "vikings": "MIN", "vikes": "MIN",
    "new england patriots": "NE", "patriots": "NE", "pats": "NE",
    "new orleans saints": "NO", "saints": "NO",
    "new york giants": "NYG", "giants": "NYG", "gmen": "NYG",
    "new york jets": "NYJ", "jets": "NYJ",
    "philadelphia eagles": "PHI", "eagles": "PHI",
    "pittsburgh steelers": "PIT", "steelers": "PIT",
    "seattle seahawks": "SEA", "seahawks": "SEA", "hawks": "SEA",
    "san francisco 49ers": "SF", "san francisco": "SF", "49ers": "SF", "niners": "SF",
    "tampa bay buccaneers": "TB", "buccaneers": "TB", "bucs": "TB",
    "tennessee titans": "TEN", "titans": "TEN",
    "washington commanders": "WAS", "washington football team": "WAS",
    "commanders": "WAS", "football team": "WAS", "wsh": "WAS",
}


def resolve(raw: Optional[str]) -> Optional[str]:
    """
    Map free text to a canonical team code, or None.

    Order: exact alias, exact code, then substring either way over ALIASES.
    """
    if not raw:
        return None
    cleaned = raw.strip().lower()
    if not cleaned:
        return None

    code = ALIASES.get(cleaned)
    if code:
        return code

    upper = cleaned.upper()
    if upper in TEAM_NAMES:
        return upper

    for alias, code in ALIASES.items():
        if alias in cleaned or cleaned in alias:
            return code
    return None


def display_name(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    return TEAM_NAMES.get(code.strip().upper())


def aliases_for(code: str) -> List[str]:
    """Code (both cases), display name (both cases) and every alias of the team."""
    code = code.strip().upper()
    name = TEAM_NAMES.get(code)
    out = [code.lower(), code]
    if name:
        out += [name, name.lower()]
    out += [alias for alias, c in ALIASES.items() if c == code]
    return out


@lru_cache(maxsize=None)
def _mention_pattern(code: str) -> "re.Pattern[str]":
    # whole-word only: short codes like "ne" or "no" sit inside ordinary words
    terms = sorted({a.lower() for a in aliases_for(code)}, key=len, reverse=True)
    return re.compile(r"(?<![a-z0-9])(?:" + "|".join(re.escape(t) for t in terms) + r")(?![a-z0-9])")


def mentions(text_lower: str, code: str) -> bool:
    """True when already-lowered text contains any alias of `code` as a whole word."""
    return bool(_mention_pattern(code.strip().upper()).search(text_lower))
