"""Utility functions for Civic Coin accounting and request handling."""

import logging
from typing import Iterable, Optional, Tuple

from django.conf import settings

logger = logging.getLogger(__name__)


def get_rank_table() -> Tuple[Tuple[str, int], ...]:
    """Return the configured rank tiers ordered by minimum balance."""
    return tuple(sorted(settings.CIVIC_COIN_RANKS, key=lambda tier: tier[1]))


def rank_for_balance(coins: int, tiers: Optional[Iterable[Tuple[str, int]]] = None) -> str:
    """Map a Civic Coin balance to its rank tier.

    Args:
        coins: Current balance.
        tiers: Optional ``(name, minimum)`` pairs. Defaults to
            ``settings.CIVIC_COIN_RANKS``.

    Returns:
        str: Name of the highest tier whose minimum is at or below ``coins``.
    """
    tiers = sorted(tiers, key=lambda tier: tier[1]) if tiers is not None else get_rank_table()
    if not tiers:
        raise ValueError('No Civic Coin rank tiers are configured')

    rank = tiers[0][0]
    for name, minimum in tiers:
        if coins >= minimum:
            rank = name
        else:
            break
    return rank


def reward_for_priority(priority: str) -> int:
    """Return the Civic Coins credited when an issue of ``priority`` is resolved.

    Raises:
        ValueError: If the priority has no configured reward.
    """
    try:
        return settings.CIVIC_COIN_REWARDS[priority]
    except KeyError:
        raise ValueError(f'No Civic Coin reward configured for priority: {priority}')


def get_client_ip(request) -> str:
    """Get client IP address, honouring ``X-Forwarded-For``."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '')
