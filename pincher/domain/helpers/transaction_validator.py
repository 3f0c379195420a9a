from pincher.domain.errors import ValidationError
from pincher.domain.helpers.dates import parse_calendar_date
from pincher.domain.models import (
    TransactionInput,
    TransactionType,
    ValidatedTransaction,
)


def infer_transaction_type(amounts: dict, is_transfer: bool) -> TransactionType:
    """
    Infer the type shared by every nonzero amount.

    The first nonzero amount fixes the type; any later amount of the other
    sign rejects the whole request. Zero amounts never influence the result.
    """
    txn_type = TransactionType.NONE
    for amount in amounts.values():
        if amount == 0:
            continue
        split_type = TransactionType.from_amount(amount, is_transfer)
        if txn_type is TransactionType.NONE:
            txn_type = split_type
        elif split_type is not txn_type:
            raise ValidationError("inconsistent signage on amount values")
    return txn_type


def validate_transaction_input(raw: TransactionInput) -> ValidatedTransaction:
    """
    Normalize a raw upsert request into a typed transaction.

    Every failure here is a client error raised as ValidationError.
    """
    txn_date = parse_calendar_date(raw.transaction_date, "transaction date")

    if not raw.account_name:
        raise ValidationError("account name not provided")
    is_transfer = bool(raw.transfer_account_name)
    if is_transfer and raw.transfer_account_name == raw.account_name:
        raise ValidationError("cannot transfer between an account and itself")

    if not raw.amounts:
        raise ValidationError("no non-zero amount specified for transaction")
    for name, amount in raw.amounts.items():
        if name == "":
            raise ValidationError(
                "found missing category name from one or more amount fields"
            )
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError(f"amount for '{name}' must be an integer")

    txn_type = infer_transaction_type(raw.amounts, is_transfer)
    amounts = {name: amount for name, amount in raw.amounts.items() if amount != 0}
    if not amounts or txn_type is TransactionType.NONE:
        raise ValidationError("no non-zero amount specified for transaction")

    return ValidatedTransaction(
        txn_type=txn_type,
        txn_date=txn_date,
        amounts=amounts,
        is_transfer=is_transfer,
        account_name=raw.account_name,
        transfer_account_name=raw.transfer_account_name,
        payee_name=raw.payee_name,
        notes=raw.notes or "",
        cleared=bool(raw.cleared),
    )


def invert_amounts(amounts: dict) -> dict:
    return {key: -amount for key, amount in amounts.items()}
