"""Static NFL and NBA team tables.

Codes are the ones used throughout the app (and stored in the database);
ESPN and DraftKings abbreviations that differ are normalised on the way in.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Optional


class UnknownTeamError(ValueError):
    """Raised for a team code that is not in the league table."""

    def __init__(self, code: str, league: str):
        super().__init__("Invalid team code: %s (%s)" % (code, league.upper()))
        self.code = code
        self.league = league


@dataclass(frozen=True)
class Team:
    code: str
    name: str
    conference: str
    division: str
    city: str
    state: str
    lat: float
    lon: float
    espn_id: int
    is_dome: bool = False
    arena: Optional[str] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["isDome"] = d.pop("is_dome")
        d["espnId"] = d.pop("espn_id")
        return d


def _nfl(code, name, conf, div, city, state, lat, lon, espn_id, dome=False):
    return code, Team(code, name, conf, div, city, state, lat, lon, espn_id, dome)


NFL_TEAMS: Dict[str, Team] = dict([
    _nfl("KC", "Kansas City Chiefs", "AFC", "West", "Kansas City", "MO", 39.0489, -94.4839, 12),
    _nfl("BUF", "Buffalo Bills", "AFC", "East", "Buffalo", "NY", 42.7738, -78.7870, 2),
    _nfl("BAL", "Baltimore Ravens", "AFC", "North", "Baltimore", "MD", 39.2780, -76.6227, 33),
    _nfl("MIA", "Miami Dolphins", "AFC", "East", "Miami Gardens", "FL", 25.9580, -80.2389, 15),
    _nfl("PHI", "Philadelphia Eagles", "NFC", "East", "Philadelphia", "PA", 39.9008, -75.1675, 21),
    _nfl("SF", "San Francisco 49ers", "NFC", "West", "Santa Clara", "CA", 37.4030, -121.9697, 25),
    _nfl("DAL", "Dallas Cowboys", "NFC", "East", "Arlington", "TX", 32.7473, -97.0945, 6, True),
    _nfl("DET", "Detroit Lions", "NFC", "North", "Detroit", "MI", 42.3400, -83.0456, 8, True),
    _nfl("CLE", "Cleveland Browns", "AFC", "North", "Cleveland", "OH", 41.5061, -81.6995, 5),
    _nfl("JAX", "Jacksonville Jaguars", "AFC", "South", "Jacksonville", "FL", 30.3240, -81.6373, 30),
    _nfl("CIN", "Cincinnati Bengals", "AFC", "North", "Cincinnati", "OH", 39.0954, -84.5160, 4),
    _nfl("HOU", "Houston Texans", "AFC", "South", "Houston", "TX", 29.6847, -95.4107, 34, True),
    _nfl("PIT", "Pittsburgh Steelers", "AFC", "North", "Pittsburgh", "PA", 40.4468, -80.0158, 23),
    _nfl("LAC", "Los Angeles Chargers", "AFC", "West", "Inglewood", "CA", 33.9535, -118.3392, 24),
    _nfl("IND", "Indianapolis Colts", "AFC", "South", "Indianapolis", "IN", 39.7601, -86.1639, 11, True),
    _nfl("DEN", "Denver Broncos", "AFC", "West", "Denver", "CO", 39.7439, -105.0201, 7),
    _nfl("LV", "Las Vegas Raiders", "AFC", "West", "Las Vegas", "NV", 36.0909, -115.1833, 13, True),
    _nfl("TEN", "Tennessee Titans", "AFC", "South", "Nashville", "TN", 36.1665, -86.7713, 10),
    _nfl("NE", "New England Patriots", "AFC", "East", "Foxborough", "MA", 42.0909, -71.2643, 17),
    _nfl("NYJ", "New York Jets", "AFC", "East", "East Rutherford", "NJ", 40.8135, -74.0745, 20),
    _nfl("MIN", "Minnesota Vikings", "NFC", "North", "Minneapolis", "MN", 44.9738, -93.2577, 16, True),
    _nfl("GB", "Green Bay Packers", "NFC", "North", "Green Bay", "WI", 44.5013, -88.0622, 9),
    _nfl("TB", "Tampa Bay Buccaneers", "NFC", "South", "Tampa", "FL", 27.9759, -82.5033, 27),
    _nfl("LAR", "Los Angeles Rams", "NFC", "West", "Inglewood", "CA", 33.9535, -118.3392, 14),
    _nfl("SEA", "Seattle Seahawks", "NFC", "West", "Seattle", "WA", 47.5952, -122.3316, 26),
    _nfl("NO", "New Orleans Saints", "NFC", "South", "New Orleans", "LA", 29.9511, -90.0812, 18, True),
    _nfl("ATL", "Atlanta Falcons", "NFC", "South", "Atlanta", "GA", 33.7554, -84.4008, 1, True),
    _nfl("CHI", "Chicago Bears", "NFC", "North", "Chicago", "IL", 41.8623, -87.6167, 3),
    _nfl("ARI", "Arizona Cardinals", "NFC", "West", "Glendale", "AZ", 33.5276, -112.2626, 22, True),
    _nfl("WAS", "Washington Commanders", "NFC", "East", "Landover", "MD", 38.9076, -76.8645, 28),
    _nfl("NYG", "New York Giants", "NFC", "East", "East Rutherford", "NJ", 40.8135, -74.0745, 19),
    _nfl("CAR", "Carolina Panthers", "NFC", "South", "Charlotte", "NC", 35.2258, -80.8530, 29),
])


def _nba(code, name, conf, div, city, state, lat, lon, espn_id, arena):
    return code, Team(code, name, conf, div, city, state, lat, lon, espn_id, True, arena)


NBA_TEAMS: Dict[str, Team] = dict([
    _nba("ATL", "Atlanta Hawks", "East", "Southeast", "Atlanta", "GA", 33.7573, -84.3963, 1, "State Farm Arena"),
    _nba("BOS", "Boston Celtics", "East", "Atlantic", "Boston", "MA", 42.3662, -71.0621, 2, "TD Garden"),
    _nba("BKN", "Brooklyn Nets", "East", "Atlantic", "Brooklyn", "NY", 40.6826, -73.9754, 17, "Barclays Center"),
    _nba("CHA", "Charlotte Hornets", "East", "Southeast", "Charlotte", "NC", 35.2251, -80.8392, 30, "Spectrum Center"),
    _nba("CHI", "Chicago Bulls", "East", "Central", "Chicago", "IL", 41.8807, -87.6742, 4, "United Center"),
    _nba("CLE", "Cleveland Cavaliers", "East", "Central", "Cleveland", "OH", 41.4965, -81.6882, 5, "Rocket Mortgage FieldHouse"),
    _nba("DAL", "Dallas Mavericks", "West", "Southwest", "Dallas", "TX", 32.7905, -96.8103, 6, "American Airlines Center"),
    _nba("DEN", "Denver Nuggets", "West", "Northwest", "Denver", "CO", 39.7487, -105.0077, 7, "Ball Arena"),
    _nba("DET", "Detroit Pistons", "East", "Central", "Detroit", "MI", 42.6970, -83.2456, 8, "Little Caesars Arena"),
    _nba("GSW", "Golden State Warriors", "West", "Pacific", "San Francisco", "CA", 37.7680, -122.3878, 9, "Chase Center"),
    _nba("HOU", "Houston Rockets", "West", "Southwest", "Houston", "TX", 29.7508, -95.3621, 10, "Toyota Center"),
    _nba("IND", "Indiana Pacers", "East", "Central", "Indianapolis", "IN", 39.7640, -86.1555, 11, "Gainbridge Fieldhouse"),
    _nba("LAC", "LA Clippers", "West", "Pacific", "Los Angeles", "CA", 34.0430, -118.2673, 12, "Crypto.com Arena"),
    _nba("LAL", "Los Angeles Lakers", "West", "Pacific", "Los Angeles", "CA", 34.0430, -118.2673, 13, "Crypto.com Arena"),
    _nba("MEM", "Memphis Grizzlies", "West", "Southwest", "Memphis", "TN", 35.1382, -90.0505, 29, "FedExForum"),
    _nba("MIA", "Miami Heat", "East", "Southeast", "Miami", "FL", 25.7814, -80.1870, 14, "Kaseya Center"),
    _nba("MIL", "Milwaukee Bucks", "East", "Central", "Milwaukee", "WI", 43.0435, -87.9170, 15, "Fiserv Forum"),
    _nba("MIN", "Minnesota Timberwolves", "West", "Northwest", "Minneapolis", "MN", 44.9795, -93.2760, 16, "Target Center"),
    _nba("NOP", "New Orleans Pelicans", "West", "Southwest", "New Orleans", "LA", 29.9490, -90.0821, 3, "Smoothie King Center"),
    _nba("NYK", "New York Knicks", "East", "Atlantic", "New York", "NY", 40.7505, -73.9934, 18, "Madison Square Garden"),
    _nba("OKC", "Oklahoma City Thunder", "West", "Northwest", "Oklahoma City", "OK", 35.4634, -97.5151, 25, "Paycom Center"),
    _nba("ORL", "Orlando Magic", "East", "Southeast", "Orlando", "FL", 28.5392, -81.3839, 19, "Kia Center"),
    _nba("PHI", "Philadelphia 76ers", "East", "Atlantic", "Philadelphia", "PA", 39.9012, -75.1720, 20, "Wells Fargo Center"),
    _nba("PHX", "Phoenix Suns", "West", "Pacific", "Phoenix", "AZ", 33.4457, -112.0712, 21, "Footprint Center"),
    _nba("POR", "Portland Trail Blazers", "West", "Northwest", "Portland", "OR", 45.5317, -122.6668, 22, "Moda Center"),
    _nba("SAC", "Sacramento Kings", "West", "Pacific", "Sacramento", "CA", 38.5802, -121.4997, 23, "Golden 1 Center"),
    _nba("SAS", "San Antonio Spurs", "West", "Southwest", "San Antonio", "TX", 29.4270, -98.4375, 24, "Frost Bank Center"),
    _nba("TOR", "Toronto Raptors", "East", "Atlantic", "Toronto", "ON", 43.6435, -79.3791, 28, "Scotiabank Arena"),
    _nba("UTA", "Utah Jazz", "West", "Northwest", "Salt Lake City", "UT", 40.7683, -111.9011, 26, "Delta Center"),
    _nba("WAS", "Washington Wizards", "East", "Southeast", "Washington", "DC", 38.8981, -77.0209, 27, "Capital One Arena"),
])

LEAGUES = {"nfl": NFL_TEAMS, "nba": NBA_TEAMS}

# ESPN abbreviations that differ from ours
_ESPN_ALIASES = {
    "nfl": {"JAC": "JAX", "LVR": "LV", "WSH": "WAS", "LA": "LAR"},
    "nba": {"GS": "GSW", "SA": "SAS", "NY": "NYK", "NO": "NOP", "UTAH": "UTA",
            "WSH": "WAS", "PHO": "PHX", "BRK": "BKN"},
}


def teams_for(league: str) -> Dict[str, Team]:
    return LEAGUES[league]


def normalize_code(abbr: str, league: str) -> str:
    abbr = (abbr or "").upper().strip()
    return _ESPN_ALIASES[league].get(abbr, abbr)


def get_team(code: str, league: str) -> Team:
    """Look up a team by code, raising ``UnknownTeamError`` when absent."""
    team = LEAGUES[league].get(normalize_code(code, league))
    if team is None:
        raise UnknownTeamError(code, league)
    return team


def is_valid_team(code: Optional[str], league: str) -> bool:
    return bool(code) and normalize_code(code, league) in LEAGUES[league]


def find_by_name(name: str, league: str) -> Optional[Team]:
    """Match a full or partial display name ("Boston Celtics", "Celtics")."""
    name = (name or "").strip().lower()
    if not name:
        return None
    for team in LEAGUES[league].values():
        full = team.name.lower()
        if full == name or full.split()[-1] == name.split()[-1]:
            return team
    return None
