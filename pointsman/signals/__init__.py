"""
Pointsman signals - public event API.

All signals are sent after the transaction that caused them commits.

Emitted signals:
- customer_created: first message from a new phone
    kwargs: customer
- points_assigned: ledger credited (check-in or POS award)
    kwargs: entry, delta, entry_type
- reward_issued: reward code minted by the reward engine
    kwargs: reward_code
- reward_redeemed: reward code redeemed at the counter
    kwargs: reward_code, redemption
- reward_cancelled: reward code cancelled by staff
    kwargs: reward_code
"""

from django.dispatch import Signal

customer_created = Signal()  # sender=Customer
points_assigned = Signal()  # sender=LedgerEntry
reward_issued = Signal()  # sender=RewardCode
reward_redeemed = Signal()  # sender=RewardCode
reward_cancelled = Signal()  # sender=RewardCode
