from birthchart.services.motion import aspect_motion, is_applying, orb_rate, signed_orb, signed_separation


def test_signed_separation_normalises_within_range():
    assert signed_separation(200.0, 10.0) == -170.0
    assert signed_separation(10.0, 350.0) == 20.0
    # the boundary itself is reported as +180
    assert signed_separation(180.0, 0.0) == 180.0
    assert signed_separation(0.0, 180.0) == 180.0


def test_signed_orb_sign_tells_wide_from_tight():
    assert signed_orb(0.0, 92.0, 90.0) == 2.0
    assert signed_orb(0.0, 88.0, 90.0) == -2.0


def test_direct_motion_applying_and_separating():
    # 2° short of an exact conjunction and moving forward
    assert is_applying(28.0, 30.0, 1.0, 0.0, 0.0)
    # 2° past exact and still moving forward
    assert not is_applying(32.0, 30.0, 1.0, 0.0, 0.0)


def test_retrograde_motion_reverses_application():
    # past the opposition but moving retrograde back toward exact
    assert is_applying(182.5, 0.0, -0.8, 0.0, 180.0)
    # short of the opposition but retrograde away from it
    assert not is_applying(177.5, 0.0, -0.8, 0.0, 180.0)


def test_equal_speeds_considered_separating():
    assert not is_applying(62.0, 0.0, 1.0, 1.0, 60.0)


def test_exact_aspect_counts_as_applying():
    assert is_applying(90.0, 0.0, 1.0, 0.0, 90.0)
    assert aspect_motion(90.0, 0.0, 1.0, 0.0, 90.0) == "applying"


def test_orb_rate_tracks_relative_speed():
    assert orb_rate(28.0, 30.0, 1.0, 0.0, 0.0) == -1.0
    assert orb_rate(32.0, 30.0, 1.0, 0.0, 0.0) == 1.0
    # the faster body behind: orb of a sextile closes at the speed difference
    assert orb_rate(0.0, 65.0, 1.5, 0.5, 60.0) == -1.0
    assert aspect_motion(0.0, 65.0, 1.5, 0.5, 60.0) == "applying"
