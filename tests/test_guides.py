from face_tracker.guides import bounds_inside, guide_ellipse_bounds, inset_bounds


def test_guide_bounds_follow_view_width():
    assert guide_ellipse_bounds(600) == (150, 80, 450, 440)
    # integer division as the view width is a pixel count
    assert guide_ellipse_bounds(1000) == (250, 133, 750, 733)


def test_inner_guide_is_inset_by_pad():
    assert inset_bounds((150, 80, 450, 440), 40) == (190, 120, 410, 400)


def test_bounds_inside():
    outer = (150, 80, 450, 440)
    assert bounds_inside(outer, (200.0, 120.0, 300.0, 240.0))
    assert bounds_inside(outer, outer)
    assert not bounds_inside(outer, (100.0, 120.0, 300.0, 240.0))
    assert not bounds_inside(outer, (200.0, 120.0, 300.0, 441.0))
