"""LeadHub — Country Tagger.

Detects country / region codes embedded in free-text campaign, ad set and
ad names ("Summer-TR-Sale", "US_DE_Bundle"). A code only counts when it
stands alone between delimiters or the ends of the name.
"""

import re
from typing import Dict, List, Pattern

COUNTRY_CODES: List[str] = [
    "TR", "EN", "IT", "DE", "FR", "RU", "BG", "NZ", "AU", "CA", "AUST",
    "ES", "SP", "NL", "BE", "AT", "CH", "PL", "UK", "US", "GB", "IE", "PT",
    "GR", "CZ", "HU", "RO", "SE", "NO", "DK", "FI", "SK", "HR", "SI",
    "LT", "LV", "EE", "CY", "MT", "LU", "IS", "AE", "SA", "QA", "KW",
    "BH", "OM", "JO", "LB", "IL", "EG", "MA", "TN", "DZ", "LY", "KE",
    "NG", "ZA", "GH", "IN", "PK", "BD", "LK", "NP", "ID", "MY", "SG",
    "TH", "VN", "PH", "JP", "KR", "CN", "HK", "TW", "MX", "BR", "AR",
    "CO", "CL", "PE", "VE", "EC", "UY", "PY", "BO", "CR", "PA", "DO",
    "GT", "HN", "SV", "NI", "CU", "PR", "JM", "TT", "BB", "BS",
]

_DELIMITER = r"[-_/\s]"

_PATTERNS: Dict[str, Pattern[str]] = {
    code: re.compile(rf"(?:^|{_DELIMITER}){code}(?=$|{_DELIMITER})")
    for code in COUNTRY_CODES
}


def parse_countries(name: str) -> List[str]:
    """Return the codes found in `name`, in order of appearance.

    Each code is reported at most once. Never returns None.
    """
    if not name:
        return []
    upper_name = name.upper()
    positions: Dict[str, int] = {}
    for code, pattern in _PATTERNS.items():
        match = pattern.search(upper_name)
        if match:
            positions[code] = match.start()
    return sorted(positions, key=lambda code: (positions[code], COUNTRY_CODES.index(code)))
