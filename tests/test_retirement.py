from swipe.retirement import RetirementPolicy, should_retire


def test_never_retires_below_minimum_sample():
    assert not should_retire(0, 4, 0)
    assert not should_retire(0, 0, 4)
    assert not should_retire(0, 0, 0)


def test_retires_at_eighty_percent_no():
    assert should_retire(0, 4, 1)


def test_keeps_at_sixty_percent_no():
    assert not should_retire(1, 3, 1)


def test_retires_on_skip_ratio_alone():
    assert should_retire(1, 0, 4)


def test_mixed_negative_signal_does_not_add_up():
    # 50% no + 50% skip is neither threshold on its own
    assert not should_retire(0, 5, 5)


def test_popular_challenge_stays():
    assert not should_retire(90, 10, 0)


def test_custom_policy():
    policy = RetirementPolicy(min_total=10, ratio=0.5)
    assert not policy.should_retire(0, 5, 0)
    assert policy.should_retire(5, 5, 0)
