"""Record visibility rules per actor role."""
from dealermaster.data_structures import Actor, UserRole


def record_filters(actor: Actor) -> dict:
    """Store filters limiting proposals and reservations to what an actor may see.

    Admins see everything, vendors their own records and clients the records
    where they are the client (a client actor's user_id is its client id).
    """
    if actor.role == UserRole.ADMIN:
        return {}
    if actor.role == UserRole.CLIENT:
        return {'client_id': int(actor.user_id)}
    return {'vendor_id': actor.user_id}


def can_view(actor: Actor, record) -> bool:
    filters = record_filters(actor)
    return all(getattr(record, key) == value for key, value in filters.items())


def visible_banks(actor: Actor, banks):
    """Admins see every bank; everyone else only active ones."""
    if actor.is_admin:
        return list(banks)
    return [bank for bank in banks if bank.is_active]
