from enum import StrEnum


class OutcomeKind(StrEnum):
    TWO_SIDED = "TWO_SIDED"
    BINARY = "BINARY"
    PLAYER_NAME = "PLAYER_NAME"


class OutcomeSide(StrEnum):
    OVER = "Over"
    UNDER = "Under"
    YES = "Yes"
    NO = "No"


# Scorer props list Yes/No per player, or one outcome named after each player.
SCORER_MARKETS = frozenset({"player_1st_td", "player_anytime_td", "player_last_td"})


def _is_scorer_market(market_key: str) -> bool:
    return market_key.strip().lower() in SCORER_MARKETS


def market_outcome_kind(market_key: str) -> OutcomeKind:
    if _is_scorer_market(market_key):
        return OutcomeKind.PLAYER_NAME
    return OutcomeKind.TWO_SIDED


def outcome_kind(market_key: str, outcome_name: str) -> OutcomeKind:
    if not _is_scorer_market(market_key):
        return OutcomeKind.TWO_SIDED
    normalized = outcome_name.strip().lower()
    if normalized in {OutcomeSide.YES.lower(), OutcomeSide.NO.lower()}:
        return OutcomeKind.BINARY
    return OutcomeKind.PLAYER_NAME


def is_negative_outcome(market_key: str, outcome_name: str) -> bool:
    """True for the complementary side of a market: "Under" on over/under props, "No" on scorer props."""
    normalized = outcome_name.strip().lower()
    kind = outcome_kind(market_key, outcome_name)
    if kind is OutcomeKind.TWO_SIDED:
        return normalized == OutcomeSide.UNDER.lower()
    if kind is OutcomeKind.BINARY:
        return normalized == OutcomeSide.NO.lower()
    return False


def positive_outcome_names(market_key: str, player: str) -> frozenset[str]:
    if market_outcome_kind(market_key) is OutcomeKind.TWO_SIDED:
        return frozenset({OutcomeSide.OVER.value})
    # Scorer outcomes are named after the player when the book omits "Yes".
    return frozenset({OutcomeSide.YES.value, player})
