"""
Score Engine for the Clout application

Computes a capper's win rate and clout score. The clout score weights
accuracy at 70 points and social proof at up to 30 points:

    clout_score = win_rate * 70 + min(follower_count / 10, 30)

Everything here is pure; callers persist the results. Stored and displayed
values are rounded to SCORE_PRECISION decimal places.
"""

ACCURACY_WEIGHT = 70
SOCIAL_CAP = 30
FOLLOWERS_PER_POINT = 10
SCORE_PRECISION = 2


def social_component(follower_count):
    """Points from followers: one per ten followers, capped at 30"""
    if follower_count < 0:
        raise ValueError(f"follower_count must be >= 0, got {follower_count}")
    return min(follower_count / FOLLOWERS_PER_POINT, SOCIAL_CAP)


def compute_stats(correct_picks, total_picks, follower_count):
    """
    Compute win rate and clout score for a capper.

    Args:
        correct_picks: Number of verified picks that were correct
        total_picks: Number of verified picks
        follower_count: Current number of followers

    Returns:
        dict with "win_rate" in [0, 1] and "clout_score" in [0, 100]

    Raises:
        ValueError: if the counts are negative or correct_picks > total_picks
    """
    if total_picks < 0:
        raise ValueError(f"total_picks must be >= 0, got {total_picks}")
    if correct_picks < 0 or correct_picks > total_picks:
        raise ValueError(
            f"correct_picks must be between 0 and total_picks ({total_picks}), "
            f"got {correct_picks}"
        )

    win_rate = correct_picks / total_picks if total_picks else 0.0
    clout_score = win_rate * ACCURACY_WEIGHT + social_component(follower_count)

    return {
        "win_rate": round(win_rate, SCORE_PRECISION),
        "clout_score": round(clout_score, SCORE_PRECISION),
    }
