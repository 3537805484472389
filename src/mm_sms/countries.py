"""
ISO 3166-1 country table with international calling codes.

The table is static data: it is built once at import time and shared through
the module-level REGISTRY. Lookups are case-insensitive and return None for
unknown codes; callers decide how to fail.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from rapidfuzz import fuzz, process, utils


@dataclass(frozen=True)
class CountryEntry:
    alpha2: str
    alpha3: str
    name: str
    calling_code: str  # 1-3 digits, no leading "+"


COUNTRIES: tuple[CountryEntry, ...] = (
    # North America
    CountryEntry("US", "USA", "United States of America", "1"),
    CountryEntry("CA", "CAN", "Canada", "1"),
    CountryEntry("MX", "MEX", "Mexico", "52"),

    # South America
    CountryEntry("BR", "BRA", "Brazil", "55"),
    CountryEntry("AR", "ARG", "Argentina", "54"),
    CountryEntry("CL", "CHL", "Chile", "56"),
    CountryEntry("CO", "COL", "Colombia", "57"),
    CountryEntry("PE", "PER", "Peru", "51"),
    CountryEntry("VE", "VEN", "Venezuela", "58"),

    # Europe
    CountryEntry("GB", "GBR", "United Kingdom", "44"),
    CountryEntry("DE", "DEU", "Germany", "49"),
    CountryEntry("FR", "FRA", "France", "33"),
    CountryEntry("IT", "ITA", "Italy", "39"),
    CountryEntry("ES", "ESP", "Spain", "34"),
    CountryEntry("NL", "NLD", "Netherlands", "31"),
    CountryEntry("SE", "SWE", "Sweden", "46"),
    CountryEntry("NO", "NOR", "Norway", "47"),
    CountryEntry("DK", "DNK", "Denmark", "45"),
    CountryEntry("FI", "FIN", "Finland", "358"),
    CountryEntry("PL", "POL", "Poland", "48"),
    CountryEntry("BE", "BEL", "Belgium", "32"),
    CountryEntry("AT", "AUT", "Austria", "43"),
    CountryEntry("CH", "CHE", "Switzerland", "41"),
    CountryEntry("PT", "PRT", "Portugal", "351"),
    CountryEntry("GR", "GRC", "Greece", "30"),
    CountryEntry("CZ", "CZE", "Czech Republic", "420"),
    CountryEntry("RO", "ROU", "Romania", "40"),
    CountryEntry("IE", "IRL", "Ireland", "353"),
    CountryEntry("HU", "HUN", "Hungary", "36"),

    # Asia
    CountryEntry("CN", "CHN", "China", "86"),
    CountryEntry("IN", "IND", "India", "91"),
    CountryEntry("JP", "JPN", "Japan", "81"),
    CountryEntry("KR", "KOR", "South Korea", "82"),
    CountryEntry("SG", "SGP", "Singapore", "65"),
    CountryEntry("HK", "HKG", "Hong Kong", "852"),
    CountryEntry("TW", "TWN", "Taiwan", "886"),
    CountryEntry("TH", "THA", "Thailand", "66"),
    CountryEntry("MY", "MYS", "Malaysia", "60"),
    CountryEntry("ID", "IDN", "Indonesia", "62"),
    CountryEntry("PH", "PHL", "Philippines", "63"),
    CountryEntry("VN", "VNM", "Vietnam", "84"),
    CountryEntry("PK", "PAK", "Pakistan", "92"),
    CountryEntry("BD", "BGD", "Bangladesh", "880"),
    CountryEntry("IL", "ISR", "Israel", "972"),
    CountryEntry("AE", "ARE", "United Arab Emirates", "971"),
    CountryEntry("SA", "SAU", "Saudi Arabia", "966"),
    CountryEntry("TR", "TUR", "Turkey", "90"),

    # Oceania
    CountryEntry("AU", "AUS", "Australia", "61"),
    CountryEntry("NZ", "NZL", "New Zealand", "64"),

    # Africa
    CountryEntry("ZA", "ZAF", "South Africa", "27"),
    CountryEntry("NG", "NGA", "Nigeria", "234"),
    CountryEntry("EG", "EGY", "Egypt", "20"),
    CountryEntry("KE", "KEN", "Kenya", "254"),
    CountryEntry("MA", "MAR", "Morocco", "212"),
    CountryEntry("GH", "GHA", "Ghana", "233"),
    CountryEntry("ET", "ETH", "Ethiopia", "251"),
    CountryEntry("TZ", "TZA", "Tanzania", "255"),
    CountryEntry("UG", "UGA", "Uganda", "256"),

    # Additional European countries
    CountryEntry("RU", "RUS", "Russia", "7"),
    CountryEntry("UA", "UKR", "Ukraine", "380"),
    CountryEntry("BG", "BGR", "Bulgaria", "359"),
    CountryEntry("HR", "HRV", "Croatia", "385"),
    CountryEntry("SK", "SVK", "Slovakia", "421"),
    CountryEntry("SI", "SVN", "Slovenia", "386"),
    CountryEntry("LT", "LTU", "Lithuania", "370"),
    CountryEntry("LV", "LVA", "Latvia", "371"),
    CountryEntry("EE", "EST", "Estonia", "372"),
    CountryEntry("RS", "SRB", "Serbia", "381"),

    # Middle East
    CountryEntry("JO", "JOR", "Jordan", "962"),
    CountryEntry("LB", "LBN", "Lebanon", "961"),
    CountryEntry("KW", "KWT", "Kuwait", "965"),
    CountryEntry("QA", "QAT", "Qatar", "974"),
    CountryEntry("OM", "OMN", "Oman", "968"),
    CountryEntry("BH", "BHR", "Bahrain", "973"),

    # Caribbean & Central America
    CountryEntry("JM", "JAM", "Jamaica", "1"),
    CountryEntry("TT", "TTO", "Trinidad and Tobago", "1"),
    CountryEntry("BB", "BRB", "Barbados", "1"),
    CountryEntry("CR", "CRI", "Costa Rica", "506"),
    CountryEntry("PA", "PAN", "Panama", "507"),
    CountryEntry("GT", "GTM", "Guatemala", "502"),
    CountryEntry("DO", "DOM", "Dominican Republic", "1"),
    CountryEntry("CU", "CUB", "Cuba", "53"),

    # Additional Asian countries
    CountryEntry("LK", "LKA", "Sri Lanka", "94"),
    CountryEntry("NP", "NPL", "Nepal", "977"),
    CountryEntry("MM", "MMR", "Myanmar", "95"),
    CountryEntry("KH", "KHM", "Cambodia", "855"),
    CountryEntry("LA", "LAO", "Laos", "856"),
    CountryEntry("MN", "MNG", "Mongolia", "976"),

    # Pacific Islands
    CountryEntry("FJ", "FJI", "Fiji", "679"),
    CountryEntry("PG", "PNG", "Papua New Guinea", "675"),

    # Additional African countries
    CountryEntry("DZ", "DZA", "Algeria", "213"),
    CountryEntry("TN", "TUN", "Tunisia", "216"),
    CountryEntry("LY", "LBY", "Libya", "218"),
    CountryEntry("SN", "SEN", "Senegal", "221"),
    CountryEntry("CI", "CIV", "Côte d'Ivoire", "225"),
    CountryEntry("CM", "CMR", "Cameroon", "237"),
    CountryEntry("ZW", "ZWE", "Zimbabwe", "263"),
    CountryEntry("BW", "BWA", "Botswana", "267"),
    CountryEntry("NA", "NAM", "Namibia", "264"),
    CountryEntry("MU", "MUS", "Mauritius", "230"),

    # Nordic & Baltic
    CountryEntry("IS", "ISL", "Iceland", "354"),
    CountryEntry("LU", "LUX", "Luxembourg", "352"),
    CountryEntry("MT", "MLT", "Malta", "356"),
    CountryEntry("CY", "CYP", "Cyprus", "357"),

    # Western Balkans
    CountryEntry("AL", "ALB", "Albania", "355"),
    CountryEntry("BA", "BIH", "Bosnia and Herzegovina", "387"),
    CountryEntry("MK", "MKD", "North Macedonia", "389"),
    CountryEntry("ME", "MNE", "Montenegro", "382"),
    CountryEntry("XK", "XKX", "Kosovo", "383"),

    # Central Asia
    CountryEntry("KZ", "KAZ", "Kazakhstan", "7"),
    CountryEntry("UZ", "UZB", "Uzbekistan", "998"),
    CountryEntry("KG", "KGZ", "Kyrgyzstan", "996"),
    CountryEntry("TJ", "TJK", "Tajikistan", "992"),
    CountryEntry("TM", "TKM", "Turkmenistan", "993"),

    # South Asia
    CountryEntry("AF", "AFG", "Afghanistan", "93"),
    CountryEntry("BT", "BTN", "Bhutan", "975"),
    CountryEntry("MV", "MDV", "Maldives", "960"),

    # Additional countries
    CountryEntry("BY", "BLR", "Belarus", "375"),
    CountryEntry("MD", "MDA", "Moldova", "373"),
    CountryEntry("GE", "GEO", "Georgia", "995"),
    CountryEntry("AM", "ARM", "Armenia", "374"),
    CountryEntry("AZ", "AZE", "Azerbaijan", "994"),
    CountryEntry("IQ", "IRQ", "Iraq", "964"),
    CountryEntry("IR", "IRN", "Iran", "98"),
    CountryEntry("SY", "SYR", "Syria", "963"),
    CountryEntry("YE", "YEM", "Yemen", "967"),
)


class CountryRegistry:
    """Read-only lookups over a fixed set of CountryEntry rows."""

    def __init__(self, entries: Iterable[CountryEntry]) -> None:
        by_alpha2: dict[str, CountryEntry] = {}
        by_alpha3: dict[str, CountryEntry] = {}
        for entry in entries:
            if entry.alpha2 in by_alpha2:
                raise ValueError(f"Duplicate alpha-2 code: {entry.alpha2}")
            if entry.alpha3 in by_alpha3:
                raise ValueError(f"Duplicate alpha-3 code: {entry.alpha3}")
            by_alpha2[entry.alpha2] = entry
            by_alpha3[entry.alpha3] = entry

        self._entries = tuple(by_alpha2.values())
        self._by_alpha2: Mapping[str, CountryEntry] = MappingProxyType(by_alpha2)
        self._by_alpha3: Mapping[str, CountryEntry] = MappingProxyType(by_alpha3)
        self._calling_codes = frozenset(e.calling_code for e in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def get(self, alpha2: str | None) -> CountryEntry | None:
        if not alpha2:
            return None
        return self._by_alpha2.get(alpha2.strip().upper())

    def calling_code_of(self, alpha2: str | None) -> str | None:
        entry = self.get(alpha2)
        return entry.calling_code if entry else None

    def name_of(self, alpha2: str | None) -> str | None:
        entry = self.get(alpha2)
        return entry.name if entry else None

    def alpha3_of(self, alpha2: str | None) -> str | None:
        entry = self.get(alpha2)
        return entry.alpha3 if entry else None

    def alpha2_of(self, alpha3: str | None) -> str | None:
        if not alpha3:
            return None
        entry = self._by_alpha3.get(alpha3.strip().upper())
        return entry.alpha2 if entry else None

    def is_known(self, alpha2: str | None) -> bool:
        return self.get(alpha2) is not None

    def codes(self) -> list[str]:
        """All alpha-2 codes in table order."""
        return [e.alpha2 for e in self._entries]

    def names(self) -> dict[str, str]:
        return {e.alpha2: e.name for e in self._entries}

    def calling_codes(self) -> frozenset[str]:
        return self._calling_codes

    def all_entries(self) -> list[dict[str, str]]:
        """{alpha2, name} pairs sorted by display name, for selection lists."""
        return [
            {"alpha2": e.alpha2, "name": e.name}
            for e in sorted(self._entries, key=lambda e: e.name.casefold())
        ]

    def options(self) -> list[dict[str, str]]:
        """Dropdown-style options: {"name": "Australia (AU)", "value": "AU"}."""
        opts = [{"name": f"{e.name} ({e.alpha2})", "value": e.alpha2} for e in self._entries]
        return sorted(opts, key=lambda o: o["name"].casefold())

    def search(self, query: str, limit: int = 5, min_score: float = 80.0) -> list[CountryEntry]:
        """
        Resolve free text to countries.

        An exact alpha-2 or alpha-3 code wins outright; otherwise names are
        fuzzy-matched and returned best first.
        """
        q = (query or "").strip()
        if not q:
            return []

        exact = self.get(q) if len(q) == 2 else None
        if exact is None and len(q) == 3:
            alpha2 = self.alpha2_of(q)
            exact = self.get(alpha2) if alpha2 else None
        if exact is not None:
            return [exact]

        choices = {e.alpha2: e.name for e in self._entries}
        matches = process.extract(
            q,
            choices,
            scorer=fuzz.WRatio,
            processor=utils.default_process,
            limit=limit,
            score_cutoff=min_score,
        )
        return [self._by_alpha2[key] for _name, _score, key in matches]


REGISTRY = CountryRegistry(COUNTRIES)
