import pytest

from edgecast.analytics import parlay_builder, same_game, sgp_builder
from edgecast.analytics.odds_converter import expected_value, parlay_odds, parlay_odds_string, round_half_up
from edgecast.analytics.props import (
    PropPick,
    confidence_bucket,
    nba_recommendation,
    nfl_parlay_odds,
    nfl_recommendation,
    nfl_team_props,
    prop_strategies,
    suggested_nfl_parlay,
)
from edgecast.analytics.team_stats import NFLTeamStats


def _nfl_player(name, position, games=10, **stats):
    season = {"gamesPlayed": games, "passingYards": 0, "rushingYards": 0, "receivingYards": 0}
    season.update(stats)
    return {"name": name, "position": position, "seasonStats": season}


def _pick(player, prop="Points", line=20.5, projection=24.0, rec="OVER", team="BOS", **kw):
    return PropPick(player=player, team=team, prop=prop, line=line, projection=projection,
                    recommendation=rec, **kw)


# ── Odds ──

def test_round_half_up():
    assert round_half_up(4.5) == 5
    assert round_half_up(2.5) == 3
    assert round_half_up(249.5) == 250
    assert round_half_up(-0.5) == 0
    assert round_half_up(7.49) == 7


def test_parlay_odds_strings():
    assert parlay_odds(2, 1.909) == round((1.909 ** 2 - 1) * 100)
    assert parlay_odds_string(0, 1.909) == "N/A"
    assert parlay_odds_string(0, 1.7, empty="+0") == "+0"
    assert nfl_parlay_odds(3) == "+%d" % round(1.83 ** 3 * 100)


def test_expected_value():
    ev = expected_value(0.5, 100, 100)
    assert ev == {"ev": "0.00", "evPercent": "0.0%", "isPositiveEV": False}
    assert expected_value(0.3, 400, 50)["isPositiveEV"] is True


# ── NFL ──

@pytest.mark.parametrize("avg,line,expected", [(260, 250, "OVER"), (240, 250, "UNDER"), (254, 250, "PASS")])
def test_nfl_recommendation(avg, line, expected):
    assert nfl_recommendation(avg, line) == expected


def test_nfl_team_props_picks_top_players_and_shades_line():
    players = [
        _nfl_player("Starter QB", "QB", passingYards=2800),
        _nfl_player("Backup QB", "QB", passingYards=300),
        _nfl_player("Lead Back", "RB", rushingYards=1100),
        _nfl_player("Slot WR", "WR", receivingYards=700),
        _nfl_player("Big TE", "TE", receivingYards=950),
    ]
    props = nfl_team_props("KC", players, team_ppg=26, opponent_ppg=30)
    by_prop = {p.prop: p for p in props}
    assert set(by_prop) == {"Passing Yards", "Rushing Yards", "Receiving Yards"}

    qb = by_prop["Passing Yards"]
    assert qb.player == "Starter QB"
    assert qb.projection == 280
    assert qb.line == 270
    assert qb.recommendation == "OVER"
    assert qb.confidence == "High"

    assert by_prop["Receiving Yards"].player == "Big TE"
    assert by_prop["Rushing Yards"].confidence == "High"


def test_nfl_team_props_skip_missing_positions():
    props = nfl_team_props("KC", [_nfl_player("Only QB", "QB", passingYards=2000)], 20, 22)
    assert [p.prop for p in props] == ["Passing Yards"]
    assert props[0].recommendation == "PASS"


def test_nfl_line_rounds_half_up():
    props = nfl_team_props("KC", [_nfl_player("Odd QB", "QB", passingYards=2510)], 20, 22)
    assert props[0].projection == 251
    assert props[0].line == 251


def test_nfl_same_game_props_shaded_by_opponent_scoring(monkeypatch):
    stats = {
        "KC": NFLTeamStats(points_per_game=22, points_allowed=34),
        "BUF": NFLTeamStats(points_per_game=30, points_allowed=21),
    }
    rosters = {"KC": [_nfl_player("Home QB", "QB", passingYards=2500)], "BUF": []}
    monkeypatch.setattr(same_game, "get_nfl_team_stats", lambda code: stats[code])
    monkeypatch.setattr(same_game, "get_nfl_injuries", lambda: {})
    monkeypatch.setattr(same_game.sleeper, "team_player_stats", lambda code: rosters[code])

    result = same_game.nfl_same_game_parlay("KC", "BUF")
    qb = result["allProps"][0]
    assert qb["player"] == "Home QB"
    # BUF scores 30 a game, so the 250-yard average is shaded down to 240
    assert qb["line"] == 240
    assert qb["recommendation"] == "OVER"
    assert result["game"] == "BUF @ KC"


def test_suggested_nfl_parlay_prefers_high_confidence():
    props = [_pick("A", confidence="High"), _pick("B", confidence="Medium"),
             _pick("C", confidence="High", rec="PASS")]
    assert [p.player for p in suggested_nfl_parlay(props)] == ["A"]
    props = [_pick(n, confidence="Low") for n in "ABCD"]
    assert len(suggested_nfl_parlay(props)) == 3


# ── NBA ──

@pytest.mark.parametrize("prop,proj,line,expected", [
    ("Points", 26.0, 24.5, "OVER"),
    ("Points", 25.5, 24.5, "PASS"),
    ("Rebounds", 8.5, 9.5, "UNDER"),
    ("3-Pointers", 3.0, 2.5, "OVER"),
])
def test_nba_recommendation(prop, proj, line, expected):
    assert nba_recommendation(prop, proj, line) == expected


def test_confidence_bucket():
    assert confidence_bucket(70) == "High"
    assert confidence_bucket(60) == "Medium"
    assert confidence_bucket(59.9) == "Low"


def _nba_roster():
    return [
        {"name": "Star", "playerId": 1, "team": "BOS", "points": 28.0, "rebounds": 8.5, "assists": 5.0,
         "fg3Made": 3.1, "projection": {"Points": 30.4, "Rebounds": 9.0, "Assists": 5.5, "3-Pointers": 3.4}},
        {"name": "Second", "playerId": 2, "team": "BOS", "points": 19.0, "rebounds": 4.0, "assists": 7.2,
         "fg3Made": 2.0, "projection": {"Points": 18.3, "Rebounds": 4.0, "Assists": 7.8, "3-Pointers": 2.2}},
        {"name": "Bench", "playerId": 3, "team": "BOS", "points": 8.0, "rebounds": 3.0, "assists": 1.0,
         "fg3Made": 0.8, "projection": {"Points": 8.5, "Rebounds": 3.0, "Assists": 1.0, "3-Pointers": 0.8}},
    ]


def test_usage_tiers():
    roster = _nba_roster()
    assert sgp_builder.usage_tier(roster[0], roster).tier == "PRIMARY"
    assert sgp_builder.usage_tier(roster[1], roster).tier == "SECONDARY"
    assert sgp_builder.usage_tier(roster[2], roster).tier == "ROLE_PLAYER"


def test_player_props_respect_minimums_and_book_lines():
    roster = _nba_roster()
    bench = sgp_builder.player_props(roster[2], roster)
    assert [p.prop for p in bench] == ["Points"]
    assert bench[0].line == 8

    star = sgp_builder.player_props(roster[0], roster, {("Star", "Points"): 29.5})
    points = next(p for p in star if p.prop == "Points")
    assert points.line == 29.5
    assert points.recommendation == "PASS"
    assert {p.prop for p in star} == {"Points", "Assists", "Rebounds", "3-Pointers"}
    for pick in star:
        assert 30 <= pick.confidence_score <= 85


def test_role_player_stretch_line_flagged():
    roster = _nba_roster()
    props = sgp_builder.player_props(roster[2], roster, {("Bench", "Points"): 12.5})
    assert props[0].is_stretch
    assert "ROLE PLAYER TRAP" in props[0].warning


def test_whole_number_projection_rounds_line_up():
    roster = _nba_roster()
    roster[2] = dict(roster[2], points=5.0, projection={"Points": 5.0})
    pick = sgp_builder.player_props(roster[2], roster)[0]
    assert pick.usage_tier == "ROLE_PLAYER"
    assert pick.line == 5
    assert pick.recommendation == "UNDER"
    assert pick.confidence_score == 30


def test_pass_props_never_become_parlay_legs():
    big = {"name": "Big Man", "playerId": 9, "team": "BOS", "points": 14.0, "rebounds": 11.0,
           "assists": 2.0, "fg3Made": 0.2, "projection": {"Points": 14.0, "Rebounds": 11.0}}
    roster = _nba_roster() + [big]
    context = {"projectedTotal": 230, "pace": 101}
    result = sgp_builder.generate_sgp_picks(roster, [], context, {("Big Man", "Rebounds"): 10.5})

    rebounds = next(p for p in result["allProps"] if p.player == "Big Man" and p.prop == "Rebounds")
    assert rebounds.recommendation == "PASS"
    assert rebounds.confidence_score >= 55
    assert all(p.recommendation != "PASS" for p in result["safeProps"])
    for tier in result["recommendations"].values():
        assert all(leg["recommendation"] != "PASS" for leg in tier["legs"])

    smart = parlay_builder.generate_smart_parlays(result["safeProps"], context)
    for kind in ("safe", "balanced", "moonshot"):
        assert all(leg.recommendation != "PASS" for leg in smart[kind]["legs"])


def test_empty_sgp_tiers_price_at_zero():
    tiers = sgp_builder.build_recommendations([])
    for tier in tiers.values():
        assert tier["legs"] == []
        assert tier["estimatedOdds"] == "+0"
        assert tier["hitRate"] == "0%"


def test_nba_injuries_only_drop_players_on_that_team(monkeypatch):
    rosters = {
        "BOS": [{"name": "Grant Williams", "points": 9.0}, {"name": "Jayson Tatum", "points": 27.0}],
        "OKC": [{"name": "Jalen Williams", "points": 21.0}],
    }
    injuries = {"Jalen Williams": {"team": "OKC", "isOut": True}}
    monkeypatch.setattr(same_game.nba_stats, "team_players", lambda code: rosters[code])

    assert [p["name"] for p in same_game._nba_players("BOS", injuries)] == ["Grant Williams", "Jayson Tatum"]
    assert same_game._nba_players("OKC", injuries) == []


def test_generate_sgp_picks_shapes():
    roster = _nba_roster()
    opp = [dict(p, name="Opp " + p["name"], team="LAL") for p in roster]
    result = sgp_builder.generate_sgp_picks(roster, opp, {"projectedTotal": 230, "pace": 101})
    assert all(isinstance(p, PropPick) for p in result["allProps"])
    assert all(not p.is_stretch and p.confidence_score >= 55 for p in result["safeProps"])
    assert set(result["recommendations"]) == {"conservative", "balanced", "aggressive"}
    for tier in result["recommendations"].values():
        assert tier["estimatedOdds"].startswith("+")
    assert any(c["type"] == "HIGH_SCORING_GAME" for c in result["correlations"])


def test_identify_warnings():
    legs = [_pick("Bench", usage_tier="ROLE_PLAYER", confidence_score=60)]
    legs += [_pick("P%d" % i, team="LAL", prop="Rebounds", confidence_score=60) for i in range(6)]
    kinds = {w["type"] for w in sgp_builder.identify_warnings(legs)}
    assert kinds == {"ROLE_PLAYER_TRAP", "TEAM_CONCENTRATION"}


def test_prop_strategies():
    props = [
        _pick("A", confidence_score=80, usage_tier="PRIMARY", edge=1.0),
        _pick("B", confidence_score=66, usage_tier="ROLE_PLAYER", edge=4.0),
        _pick("C", confidence_score=56, usage_tier="SECONDARY", edge=2.0),
        _pick("D", confidence_score=90, rec="PASS"),
    ]
    strategies = prop_strategies(props)
    assert [leg["player"] for leg in strategies["conservative"]["legs"]] == ["A"]
    assert [leg["player"] for leg in strategies["balanced"]["legs"]] == ["A"]
    assert [leg["player"] for leg in strategies["aggressive"]["legs"]] == ["A", "B", "C"]
    assert [leg["player"] for leg in strategies["risky"]["legs"]] == ["B", "C", "A"]


# ── Smart parlays ──

@pytest.mark.parametrize("diff,expected", [(0.5, 52.5), (1.5, 60.0), (2.5, 70.0), (4.0, 83.0), (20, 100)])
def test_edge_confidence_score(diff, expected):
    assert parlay_builder.confidence_score(10 + diff, 10) == pytest.approx(expected)


def test_generate_smart_parlays():
    props = [_pick("P%d" % i, line=20.5, projection=20.5 + i * 0.5, team="BOS" if i % 2 else "LAL")
             for i in range(1, 11)]
    props.append(_pick("Skip", rec="PASS", projection=40))
    result = parlay_builder.generate_smart_parlays(props, {"projectedTotal": 210, "spread": 2, "pace": 97})

    safe = result["safe"]
    assert [leg.player for leg in safe["legs"]] == ["P10", "P9", "P8", "P7"]
    assert safe["recommendedUnits"] == 2
    assert safe["odds"] == parlay_odds_string(4, 1.909)
    assert all(leg.player != "Skip" for leg in result["moonshot"]["legs"])
    assert len(result["moonshot"]["legs"]) == 7
    assert result["balanced"]["correlation"] is None
    # Original picks are untouched
    assert props[0].confidence_score is None


def test_blowout_correlation_drives_balanced_parlay():
    props = [_pick("Fav%d" % i, team="BOS", projection=24.0 + i, line=20.5) for i in range(4)]
    context = {"projectedTotal": 215, "spread": 9.5, "pace": 98, "homeTeam": "BOS", "awayTeam": "LAL"}
    result = parlay_builder.generate_smart_parlays(props, context)
    assert result["balanced"]["correlation"] == "blowout"
    assert result["balanced"]["reasoning"].startswith("CORRELATED: BOS favored by 9.5")
    assert result["allCorrelations"][0]["props"][0]["player"].startswith("Fav")


def test_format_parlay_for_display():
    props = [_pick("P%d" % i, projection=24.0, line=20.5, season_avg=22.1) for i in range(3)]
    parlays = parlay_builder.generate_smart_parlays(props, {})
    display = parlay_builder.format_parlay_for_display(parlays["safe"], bankroll=1000)
    assert display["emoji"] == "🔥"
    assert display["recommendedBet"] == "2 units ($20.00)"
    assert [leg["legNumber"] for leg in display["legs"]] == [1, 2, 3]
    assert display["legs"][0]["seasonAvg"] == "22.1"
    assert display["legs"][0]["confidence"] == "82%"
    empty = dict(parlays["safe"], legs=[])
    assert parlay_builder.format_parlay_for_display(empty) is None


def test_display_confidence_rounds_half_up():
    parlays = parlay_builder.generate_smart_parlays([_pick("Edge", projection=21.0, line=20.5)], {})
    leg = parlay_builder.format_parlay_for_display(parlays["safe"])["legs"][0]
    assert leg["confidenceScore"] == 53
    assert leg["confidence"] == "53%"
