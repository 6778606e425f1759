from operations.services.geo import distance_meters, eta_minutes, verify_within_radius


def test_same_point_is_zero():
    assert distance_meters(21.2514, 81.6296, 21.2514, 81.6296) == 0


def test_one_degree_on_equator():
    assert distance_meters(0, 0, 0, 1) == 111195


def test_distance_is_symmetric():
    a = distance_meters(21.2514, 81.6296, 21.1610, 81.7870)
    b = distance_meters(21.1610, 81.7870, 21.2514, 81.6296)
    assert a == b
    assert 18000 < a < 20000


def test_radius_boundary_counts_as_inside():
    d = distance_meters(21.2514, 81.6296, 21.2518, 81.6296)
    assert verify_within_radius(21.2514, 81.6296, 21.2518, 81.6296, radius_meters=d) == {"verified": True, "distance": d}
    assert verify_within_radius(21.2514, 81.6296, 21.2518, 81.6296, radius_meters=d - 1)["verified"] is False


def test_default_radius_is_one_hundred_meters():
    # ~44 m north
    assert verify_within_radius(21.2514, 81.6296, 21.2518, 81.6296)["verified"] is True
    # ~111 m north
    assert verify_within_radius(21.2514, 81.6296, 21.2524, 81.6296)["verified"] is False


def test_eta_minutes():
    assert eta_minutes(0) == 0
    assert eta_minutes(10_000) == 15
    assert eta_minutes(1000) == 2
    assert eta_minutes(10_000, speed_kmh=60) == 10


def test_delhi_pair():
    # often quoted as 12-13 km apart; the great-circle distance is about 14.4 km
    d = distance_meters(28.6139, 77.2090, 28.7041, 77.1025)
    assert d == 14442
    assert d == distance_meters(28.7041, 77.1025, 28.6139, 77.2090)
