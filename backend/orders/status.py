"""
Machine à états des commandes.

pending -> processing -> shipped -> arrived -> delivered
'cancelled' est atteignable depuis tout état non terminal; delivered et cancelled sont terminaux.
"""
from enum import Enum
from typing import Dict, FrozenSet

from backend.utils.errors import ClientInputError, InvalidTransitionError


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    ARRIVED = "arrived"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.ARRIVED, OrderStatus.CANCELLED}),
    OrderStatus.ARRIVED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus((value or "").strip().lower())
    except ValueError:
        raise ClientInputError(f"unknown status: {value}")


def is_terminal(status: OrderStatus) -> bool:
    return not TRANSITIONS[status]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: str, target: str) -> OrderStatus:
    """
    Valide current -> target et retourne le statut cible.
    InvalidTransitionError si la commande est déjà terminée ou si la transition n'existe pas.
    """
    src = parse_status(current)
    dst = parse_status(target)
    if is_terminal(src):
        raise InvalidTransitionError(f"order is in terminal state: {src.value}")
    if not can_transition(src, dst):
        raise InvalidTransitionError(f"invalid status transition: {src.value} -> {dst.value}")
    return dst
