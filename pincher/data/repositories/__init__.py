# Importing every repository registers all tables on Base.metadata.
from pincher.data.repositories import (  # noqa: F401
    account_repository,
    assignment_repository,
    budget_repository,
    category_repository,
    payee_repository,
    transaction_repository,
    user_repository,
)
