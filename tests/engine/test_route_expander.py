from __future__ import annotations

import pytest

from fixwatch.engine.route_expander import RouteExpander, tokenize_route
from fixwatch.reference.airways import AirwayIndex, make_waypoint
from fixwatch.reference.domain_types import Airway


def _index() -> AirwayIndex:
    chain = tuple(
        make_waypoint(name, 10.0 + idx, -60.0 - idx) for idx, name in enumerate(["A", "B", "C", "D", "E"])
    )
    other = (make_waypoint("X", 30.0, -70.0), make_waypoint("C", 12.0, -62.0), make_waypoint("Y", 31.0, -71.0))
    return AirwayIndex([Airway("L1", chain), Airway("M2", other)])


def test_tokenize_strips_annotations_and_uppercases():
    assert tokenize_route("keeka/n0450f360 L455  kinch /F350 ") == ["KEEKA", "L455", "KINCH"]
    assert tokenize_route(None) == []
    assert tokenize_route("   ") == []


def test_airway_expanded_between_entry_and_exit():
    expander = RouteExpander(_index())
    assert expander.expand("A L1 D") == ("A", "B", "C", "D")


def test_airway_expanded_in_reverse_when_flown_backwards():
    expander = RouteExpander(_index())
    assert expander.expand("D L1 A") == ("D", "C", "B", "A")


def test_partial_airway_slice_and_plain_tokens():
    expander = RouteExpander(_index())
    assert expander.expand("TJSJ B/N0450F350 L1 D DCT KJFK") == ("TJSJ", "B", "C", "D", "DCT", "KJFK")


def test_chained_airways_share_junction_fix():
    expander = RouteExpander(_index())
    assert expander.expand("A L1 C M2 Y") == ("A", "B", "C", "Y")


@pytest.mark.parametrize(
    "route, expected",
    [
        ("L1 D", ("D",)),
        ("A L1", ("A",)),
        ("A L1 ZZZ", ("A", "ZZZ")),
        ("QQQ L1 D", ("QQQ", "D")),
    ],
)
def test_unresolvable_airway_contributes_nothing(route, expected):
    assert RouteExpander(_index()).expand(route) == expected


def test_plain_routes_are_deduplicated_in_order():
    expander = RouteExpander(_index())
    route = "KINCH HANCY KINCH CHEDR HANCY"
    expanded = expander.expand(route)
    assert expanded == ("KINCH", "HANCY", "CHEDR")
    assert expander.expand(" ".join(expanded)) == expanded


def test_packaged_airway_stored_against_flight_direction(engine):
    # L458 is stored SJU -> PIREX.
    assert engine.expander.expand("PIREX L458 SJU") == ("PIREX", "CHEDR", "ELMUD", "SJU")


@pytest.mark.parametrize(
    "route, fix",
    [
        ("KJFK L455 SJU", None),
        ("LENNT L455 SJU", "KINCH"),
        ("PIREX L456 SJU", "HANCY"),
        ("PIREX L458 SJU", "CHEDR"),
        ("DELVE M597 ELMUD", "KEEKA"),
        ("SAVIK Y315 PADUS", "KEEKA"),
        ("ZIBUT L459 SJU", "KEEKA"),
        ("GUYMO L329 ELMUD", "KEEKA"),
        ("NUCAR L327 SJU", "OPAUL"),
        ("ONGOT L461 ANGIO", "OPAUL"),
        ("SAVAL M525 ANGIO", "SOCCO"),
        ("GRUPO L462 PIKIL", "DAWIN"),
        ("HOLAP L335 TUKAN", "OBIKE"),
        ("OLAPO M576 TUKAN", "OBIKE"),
    ],
)
def test_packaged_corridors_cross_their_boundary_fix(engine, route, fix):
    expanded = engine.expander.expand(route)
    boundary = [name for name in expanded if name in engine.resolver.boundary_fixes]
    assert boundary == ([fix] if fix else [])
