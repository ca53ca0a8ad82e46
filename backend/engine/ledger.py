"""
ledger.py — Payment recording and read-only financial helpers.

Payments are only ever added: amount_paid never goes down through this
module. Overpayment is accepted and simply yields a "paid" status.
"""

import logging
from datetime import date, datetime
from decimal import Decimal

from engine.errors import InvalidAmountError
from engine.records import ClientEngagement, ClientUpdate, payment_status_for, to_money
from engine.updates import UpdateEngine, UpdateResult

log = logging.getLogger(__name__)


def outstanding(record: ClientEngagement) -> Decimal:
    return max(record.contract_value - record.amount_paid, Decimal("0"))


def renewal_date(record: ClientEngagement) -> date:
    """Missions renew yearly on the anniversary of their start date."""
    start = datetime.fromisoformat(record.mission_start_date.replace("Z", "+00:00")).date()
    try:
        return start.replace(year=start.year + 1)
    except ValueError:
        # 29 February → 28 February
        return start.replace(year=start.year + 1, day=28)


class PaymentLedger:

    def __init__(self, engine: UpdateEngine):
        self.engine = engine

    def record_payment(self, client_id: str, amount) -> UpdateResult:
        """
        Add `amount` to the client's paid total.

        Raises InvalidAmountError for non-positive or non-numeric amounts,
        NotFoundError for an unknown client.
        """
        try:
            value = to_money(amount)
        except ValueError:
            raise InvalidAmountError(amount)
        if value <= 0:
            raise InvalidAmountError(amount)

        record = self.engine.store.get(client_id)
        new_paid = record.amount_paid + value
        status = payment_status_for(new_paid, record.contract_value)

        log.info(
            "Recording payment of %s %s for client %s (paid %s → %s, %s).",
            value, record.currency, client_id, record.amount_paid, new_paid, status.value,
        )
        return self.engine.apply_update(client_id, ClientUpdate(
            amount_paid=new_paid,
            payment_status=status,
            last_payment_date=self.engine.clock().isoformat(),
        ))
