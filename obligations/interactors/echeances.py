"""
Coupon schedule (échéancier) views for a tranche.
"""

from collections import OrderedDict
from datetime import date
from typing import Dict, List, Optional

from obligations.models.issuance import Echeance, EcheanceGroup, EcheanceStatus
from obligations.services import mongodb
from obligations.utils.errors import NotFoundError
from obligations.utils.parser_helper import ParserHelper


def group_echeances(echeances: List[Echeance], today: Optional[date] = None) -> List[EcheanceGroup]:
    """
    Group échéances sharing a due date, in ascending date order.

    A group is paid when all its échéances are paid, overdue when its date
    is before today, upcoming otherwise.
    """
    today = today or date.today()
    groups: Dict[str, List[Echeance]] = OrderedDict()
    for e in sorted(echeances, key=lambda x: x.due_date):
        groups.setdefault(e.due_date, []).append(e)

    result = []
    for due_date, items in groups.items():
        due = ParserHelper.parse_european_date(due_date)
        days_overdue = None
        if all(e.status == EcheanceStatus.PAID.value for e in items):
            status = EcheanceStatus.PAID
        elif due is not None and due < today:
            status = EcheanceStatus.OVERDUE
            days_overdue = (today - due).days
        else:
            status = EcheanceStatus.UPCOMING

        result.append(EcheanceGroup(
            date=due_date,
            total_amount=round(sum(e.coupon_amount for e in items), 2),
            count=len(items),
            status=status,
            days_overdue=days_overdue,
            echeances=items,
        ))
    return result


async def list_tranche_echeances(tranche_id: str, today: Optional[date] = None) -> List[EcheanceGroup]:
    tranche = await mongodb.get_tranche(tranche_id)
    if not tranche:
        raise NotFoundError(f"Tranche {tranche_id} not found")

    subscriptions = await mongodb.get_tranche_subscriptions(tranche_id)
    if not subscriptions:
        return []
    docs = await mongodb.get_echeances([s["_id"] for s in subscriptions])
    return group_echeances([Echeance.model_validate(d) for d in docs], today)
