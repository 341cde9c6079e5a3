from __future__ import annotations

UK_AIRPORTS: list[dict[str, str]] = [
    {"code": "LGW", "name": "London Gatwick"},
    {"code": "STN", "name": "London Stansted"},
    {"code": "LTN", "name": "London Luton"},
    {"code": "LHR", "name": "London Heathrow"},
    {"code": "MAN", "name": "Manchester"},
    {"code": "BHX", "name": "Birmingham"},
    {"code": "BRS", "name": "Bristol"},
    {"code": "EDI", "name": "Edinburgh"},
    {"code": "GLA", "name": "Glasgow"},
    {"code": "NCL", "name": "Newcastle"},
    {"code": "LBA", "name": "Leeds Bradford"},
    {"code": "EMA", "name": "East Midlands"},
    {"code": "LPL", "name": "Liverpool"},
    {"code": "SOU", "name": "Southampton"},
    {"code": "CWL", "name": "Cardiff"},
]

DEFAULT_DEPARTURE_AIRPORTS = "|".join(airport["code"] for airport in UK_AIRPORTS[:9])

_NAMES_BY_CODE = {airport["code"]: airport["name"] for airport in UK_AIRPORTS}


def normalize_iata(value: str | None) -> str:
    probe = str(value or "").strip().upper()
    if len(probe) == 3 and probe.isalpha():
        return probe
    return ""


def parse_airport_list(value: str | None) -> list[str]:
    codes: list[str] = []
    for token in str(value or "").replace(",", "|").split("|"):
        code = normalize_iata(token)
        if code and code not in codes:
            codes.append(code)
    return codes


def airport_name(code: str, fallback: str = "") -> str:
    return _NAMES_BY_CODE.get(normalize_iata(code)) or fallback or code
