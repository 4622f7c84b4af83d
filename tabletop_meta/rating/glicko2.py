"""
Glicko-2 Rating Engine

Updates one player's rating for one rating period, following Glickman's
"Example of the Glicko-2 system" (2012):

1. Convert to the internal scale: mu = (r - 1500) / 173.7178, phi = RD / 173.7178
2. No games in the period: only phi grows, phi' = sqrt(phi^2 + sigma^2)
3. Estimated variance v and improvement delta from the period's games
4. New volatility sigma' by Illinois root search over ln(sigma^2)
5. New phi and mu, converted back to the public scale

RD is floored at RD_FLOOR after a rated period so heavily played ratings
never become fully certain. Games whose expected score is 0 or 1 to within
floating-point precision (rating gaps of several thousand points) are ignored; if no
game is left the period counts as one without games.

Usage:
    from tabletop_meta.rating.glicko2 import update_rating
    new = update_rating(Rating(1500, 200, 0.06), [GameOutcome(1400, 30, 1.0)])
"""

import math
import sys

from tabletop_meta.config import (
    BASELINE_RATING,
    EPSILON,
    GLICKO2_SCALE,
    MAX_VOLATILITY_ITERATIONS,
    RD_FLOOR,
    TAU,
)
from tabletop_meta.errors import ConvergenceError, RatingInputError
from tabletop_meta.models import GameOutcome, Rating
from tabletop_meta.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

VALID_SCORES = (0.0, 0.5, 1.0)

# Expected scores closer than this to 0 or 1 are treated as certain
CERTAIN_MARGIN = sys.float_info.epsilon


# --- Scale Conversion ---
def to_glicko2_scale(rating: float, rd: float) -> tuple[float, float]:
    """Convert (r, RD) to the internal (mu, phi) scale"""
    return (rating - BASELINE_RATING) / GLICKO2_SCALE, rd / GLICKO2_SCALE


def from_glicko2_scale(mu: float, phi: float) -> tuple[float, float]:
    """Convert internal (mu, phi) back to (r, RD)"""
    return GLICKO2_SCALE * mu + BASELINE_RATING, GLICKO2_SCALE * phi


# --- Glicko-2 Functions ---
def g(phi: float) -> float:
    """Weight of a game by the opponent's deviation: 1 / sqrt(1 + 3 phi^2 / pi^2)"""
    return 1 / math.sqrt(1 + 3 * phi * phi / (math.pi * math.pi))


def expected_score(mu: float, mu_j: float, phi_j: float) -> float:
    """
    Expected score against opponent j on the internal scale.

    The logistic is evaluated on whichever side keeps exp() from overflowing,
    so any finite rating gap gives a result in [0, 1].
    """
    z = g(phi_j) * (mu - mu_j)
    if z >= 0:
        return 1 / (1 + math.exp(-z))
    ez = math.exp(z)
    return ez / (1 + ez)


def solve_volatility(
    sigma: float,
    phi: float,
    v: float,
    delta: float,
    tau: float = TAU,
    tolerance: float = EPSILON,
    max_iterations: int = MAX_VOLATILITY_ITERATIONS,
) -> float:
    """
    Find the new volatility sigma' with the Illinois algorithm.

    Searches x = ln(sigma'^2) for the root of

        f(x) = e^x (delta^2 - phi^2 - v - e^x) / (2 (phi^2 + v + e^x)^2) - (x - a) / tau^2

    where a = ln(sigma^2). Both the bracketing loop and the root search are
    bounded by max_iterations.

    Args:
        sigma: Current volatility
        phi: Current deviation on the internal scale
        v: Estimated variance of the player's rating from game outcomes
        delta: Estimated improvement
        tau: System constant constraining volatility change
        tolerance: Convergence tolerance on the bracket width
        max_iterations: Iteration guard for each loop

    Returns:
        The new volatility

    Raises:
        ConvergenceError: If either loop exceeds max_iterations
    """
    a = math.log(sigma * sigma)
    phi2 = phi * phi
    delta2 = delta * delta

    def f(x):
        ex = math.exp(x)
        denom = phi2 + v + ex
        return ex * (delta2 - phi2 - v - ex) / (2 * denom * denom) - (x - a) / (tau * tau)

    # Initial bracket [A, B]
    A = a
    if delta2 > phi2 + v:
        B = math.log(delta2 - phi2 - v)
    else:
        k = 1
        while f(a - k * tau) < 0:
            k += 1
            if k > max_iterations:
                raise ConvergenceError(
                    f"Volatility bracket not found after {max_iterations} steps "
                    f"(sigma={sigma}, phi={phi}, v={v}, delta={delta})"
                )
        B = a - k * tau

    f_a = f(A)
    f_b = f(B)

    iterations = 0
    while abs(B - A) > tolerance:
        iterations += 1
        if iterations > max_iterations:
            raise ConvergenceError(
                f"Volatility search did not converge in {max_iterations} iterations "
                f"(sigma={sigma}, phi={phi}, v={v}, delta={delta})"
            )

        C = A + (A - B) * f_a / (f_b - f_a)
        f_c = f(C)
        if f_c * f_b <= 0:
            A, f_a = B, f_b
        else:
            f_a = f_a / 2
        B, f_b = C, f_c

    return math.exp(A / 2)


# --- Validation ---
def _require_positive(label: str, value: float) -> None:
    if not math.isfinite(value) or value <= 0:
        raise RatingInputError(f"{label} must be a finite positive number, got {value!r}")


def validate_rating_inputs(rating: Rating, games: list[GameOutcome]) -> None:
    """
    Reject inputs outside the Glicko-2 domain.

    Raises:
        RatingInputError: On non-finite values, RD or volatility <= 0
            (player or opponent), or a score other than 0, 0.5 or 1
    """
    if not math.isfinite(rating.rating):
        raise RatingInputError(f"rating must be finite, got {rating.rating!r}")
    _require_positive("RD", rating.rd)
    _require_positive("volatility", rating.volatility)

    for i, game in enumerate(games):
        if not math.isfinite(game.opponent_rating):
            raise RatingInputError(f"game {i}: opponent rating must be finite, got {game.opponent_rating!r}")
        _require_positive(f"game {i}: opponent RD", game.opponent_rd)
        if game.score not in VALID_SCORES:
            raise RatingInputError(f"game {i}: score must be 0, 0.5 or 1, got {game.score!r}")


# --- Rating Update ---
def update_rating(
    rating: Rating,
    games: list[GameOutcome],
    tau: float = TAU,
    tolerance: float = EPSILON,
) -> Rating:
    """
    Compute a player's rating after one rating period.

    Args:
        rating: Rating at the start of the period
        games: Every game the player played in the period; opponents are
            given with their start-of-period ratings
        tau: System constant
        tolerance: Convergence tolerance for the volatility search

    Returns:
        The new Rating

    Raises:
        RatingInputError: If the inputs are outside the Glicko-2 domain
        ConvergenceError: If the volatility search does not converge
    """
    validate_rating_inputs(rating, games)

    mu, phi = to_glicko2_scale(rating.rating, rating.rd)
    sigma = rating.volatility

    if not games:
        phi_star = math.sqrt(phi * phi + sigma * sigma)
        _, rd = from_glicko2_scale(mu, phi_star)
        return Rating(rating=rating.rating, rd=rd, volatility=sigma)

    v_inv = 0.0
    score_sum = 0.0
    skipped = 0
    for game in games:
        mu_j, phi_j = to_glicko2_scale(game.opponent_rating, game.opponent_rd)
        g_j = g(phi_j)
        e_j = expected_score(mu, mu_j, phi_j)
        if e_j < CERTAIN_MARGIN or e_j > 1 - CERTAIN_MARGIN:
            # Outcome certain at float precision, no information in the game
            skipped += 1
            continue
        v_inv += g_j * g_j * e_j * (1 - e_j)
        score_sum += g_j * (game.score - e_j)

    if skipped:
        logger.warning(
            f"Ignored {skipped}/{len(games)} games with a rating gap too large to be informative "
            f"(rating={rating.rating})"
        )
    if v_inv <= 0:
        return update_rating(rating, [], tau=tau, tolerance=tolerance)

    v = 1 / v_inv
    delta = v * score_sum

    new_sigma = solve_volatility(sigma, phi, v, delta, tau=tau, tolerance=tolerance)

    phi_star = math.sqrt(phi * phi + new_sigma * new_sigma)
    new_phi = 1 / math.sqrt(1 / (phi_star * phi_star) + 1 / v)
    new_mu = mu + new_phi * new_phi * score_sum

    new_rating, new_rd = from_glicko2_scale(new_mu, new_phi)
    return Rating(rating=new_rating, rd=max(new_rd, RD_FLOOR), volatility=new_sigma)
