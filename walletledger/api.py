"""FastAPI application exposing the walletledger service."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated, Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import AuthenticatedUser, DevTokenVerifier, TokenVerifier, build_token_verifier, extract_bearer_token
from .config import load_config
from .database import SQLiteRepository
from .errors import InternalError, LedgerError, NotFound, Unauthorized, ValidationError
from .guards import OwnershipGuard
from .models import utcnow
from .reconciler import BalanceReconciler
from .schemas import (
    CategoryCreate,
    CategoryUpdate,
    DevTokenRequest,
    EntryType,
    TransactionCreate,
    TransactionUpdate,
    TransferCreate,
    WalletCreate,
    WalletReorder,
    WalletUpdate,
)
from .seed import setup_new_user
from .services import CategoryService, TransactionService, WalletService
from .statistics import StatisticsService
from .transfers import TransferEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Initialise shared services once and reuse them across requests."""

    config = load_config()
    repository = SQLiteRepository(config.database_file)
    repository.initialise_schema()
    guard = OwnershipGuard(repository)
    reconciler = BalanceReconciler(repository)

    app.state.config = config
    app.state.repository = repository
    app.state.verifier = build_token_verifier(config)
    app.state.reconciler = reconciler
    app.state.wallets = WalletService(repository, guard, reconciler)
    app.state.categories = CategoryService(repository, guard)
    app.state.transactions = TransactionService(repository, guard, reconciler)
    app.state.transfers = TransferEngine(repository, reconciler)
    app.state.statistics = StatisticsService(repository)
    logger.info("Ledger ready at %s (auth mode: %s)", config.database_file, config.auth_mode)

    yield

    repository.close()


app = FastAPI(lifespan=lifespan, title="walletledger", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(load_config().trusted_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handling ------------------------------------------------------------


@app.exception_handler(LedgerError)
async def ledger_error_handler(_: Request, exc: LedgerError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("Ledger failure: %s", exc.message, exc_info=exc.__cause__)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError("Invalid request", {"errors": jsonable_encoder(exc.errors())})
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(sqlite3.Error)
async def storage_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    error = InternalError("Storage failure")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    error = InternalError("Internal server error")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def success_response(data: object, meta: Optional[dict[str, object]] = None) -> dict[str, object]:
    payload: dict[str, object] = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return payload


# Dependency injection ------------------------------------------------------


def get_repository() -> SQLiteRepository:
    repository: SQLiteRepository = app.state.repository
    return repository


def get_wallet_service() -> WalletService:
    service: WalletService = app.state.wallets
    return service


def get_category_service() -> CategoryService:
    service: CategoryService = app.state.categories
    return service


def get_transaction_service() -> TransactionService:
    service: TransactionService = app.state.transactions
    return service


def get_transfer_engine() -> TransferEngine:
    engine: TransferEngine = app.state.transfers
    return engine


def get_statistics_service() -> StatisticsService:
    service: StatisticsService = app.state.statistics
    return service


def get_current_user(authorization: Annotated[Optional[str], Header()] = None) -> AuthenticatedUser:
    """Resolve the caller from a bearer token; seed their ledger on first sight."""

    token = extract_bearer_token(authorization)
    if token is None:
        raise Unauthorized("Unauthorized: Missing or invalid Authorization header")
    verifier: TokenVerifier = app.state.verifier
    user = verifier.verify(token)
    setup_new_user(app.state.repository, user.uid)
    return user


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
Wallets = Annotated[WalletService, Depends(get_wallet_service)]
Categories = Annotated[CategoryService, Depends(get_category_service)]
Transactions = Annotated[TransactionService, Depends(get_transaction_service)]
Transfers = Annotated[TransferEngine, Depends(get_transfer_engine)]
Statistics = Annotated[StatisticsService, Depends(get_statistics_service)]


# Routes: public ------------------------------------------------------------


@app.get("/")
def index() -> dict[str, object]:
    return {
        "message": "walletledger API",
        "version": app.version,
        "endpoints": {
            "wallet": "/api/wallet",
            "transaction": "/api/transaction",
            "transfer": "/api/transfer",
            "categories": "/api/categories",
            "dashboard": "/api/dashboard",
            "statistics": "/api/statistics/**",
        },
    }


@app.get("/health")
def health_check() -> dict[str, str]:
    """Return a basic heartbeat payload for monitoring purposes."""

    return {"status": "ok", "timestamp": utcnow().isoformat()}


@app.post("/api/auth/dev-token")
def issue_dev_token(payload: DevTokenRequest) -> dict[str, object]:
    """Issue a locally signed token. Only available in dev auth mode."""

    verifier = app.state.verifier
    if not isinstance(verifier, DevTokenVerifier):
        raise NotFound("Not found")
    token = verifier.issue(payload.uid, email=payload.email, name=payload.name)
    return success_response({"accessToken": token, "tokenType": "bearer"})


@app.post("/api/onboarding")
def onboarding(
    user: CurrentUser,
    repository: Annotated[SQLiteRepository, Depends(get_repository)],
) -> dict[str, object]:
    return success_response(setup_new_user(repository, user.uid).to_dict())


# Routes: wallets -----------------------------------------------------------


@app.get("/api/wallet")
def list_wallets(
    user: CurrentUser,
    wallets: Wallets,
    include_inactive: Annotated[bool, Query()] = False,
) -> dict[str, object]:
    items = wallets.list_wallets(user.uid, include_inactive=include_inactive)
    return success_response([wallet.to_dict() for wallet in items])


@app.post("/api/wallet", status_code=201)
def create_wallet(payload: WalletCreate, user: CurrentUser, wallets: Wallets) -> dict[str, object]:
    wallet = wallets.create_wallet(
        user.uid,
        name=payload.name,
        initial_balance=payload.initial_balance,
        icon=payload.icon,
        color=payload.color,
        display_order=payload.display_order,
    )
    return success_response(wallet.to_dict())


@app.patch("/api/wallet/reorder")
def reorder_wallets(payload: WalletReorder, user: CurrentUser, wallets: Wallets) -> dict[str, object]:
    items = wallets.reorder_wallets(user.uid, [(item.id, item.display_order) for item in payload.wallets])
    return success_response([wallet.to_dict() for wallet in items])


@app.post("/api/wallet/reconcile")
def reconcile_wallets(user: CurrentUser, wallets: Wallets) -> dict[str, object]:
    """Re-derive every wallet balance of the caller and report repaired drift."""

    drifts = wallets.reconcile(user.uid)
    return success_response({"repaired": [drift.to_dict() for drift in drifts]})


@app.get("/api/wallet/{wallet_id}")
def get_wallet(wallet_id: int, user: CurrentUser, wallets: Wallets) -> dict[str, object]:
    return success_response(wallets.get_wallet(user.uid, wallet_id).to_dict())


@app.get("/api/wallet/{wallet_id}/balance")
def get_wallet_balance(wallet_id: int, user: CurrentUser, wallets: Wallets) -> dict[str, object]:
    wallet = wallets.get_wallet(user.uid, wallet_id)
    derived = wallets.recompute_balance(user.uid, wallet_id)
    return success_response(
        {
            "walletId": wallet.id,
            "cachedBalance": wallet.to_dict()["currentBalance"],
            "derivedBalance": str(derived),
        }
    )


@app.patch("/api/wallet/{wallet_id}")
def update_wallet(wallet_id: int, payload: WalletUpdate, user: CurrentUser, wallets: Wallets) -> dict[str, object]:
    wallet = wallets.update_wallet(user.uid, wallet_id, payload.model_dump(exclude_unset=True))
    return success_response(wallet.to_dict())


@app.delete("/api/wallet/{wallet_id}")
def delete_wallet(wallet_id: int, user: CurrentUser, wallets: Wallets) -> dict[str, object]:
    wallets.soft_delete_wallet(user.uid, wallet_id)
    return success_response({"message": "Wallet deleted successfully"})


@app.delete("/api/wallet/{wallet_id}/purge")
def purge_wallet(wallet_id: int, user: CurrentUser, wallets: Wallets) -> dict[str, object]:
    counterparts = wallets.purge_wallet(user.uid, wallet_id)
    return success_response({"message": "Wallet purged", "reconciledWallets": sorted(counterparts)})


# Routes: categories --------------------------------------------------------


@app.get("/api/categories")
def list_categories(
    user: CurrentUser,
    categories: Categories,
    type: Annotated[Optional[EntryType], Query()] = None,
) -> dict[str, object]:
    items = categories.list_categories(user.uid, type)
    return success_response([category.to_dict() for category in items])


@app.post("/api/categories", status_code=201)
def create_category(payload: CategoryCreate, user: CurrentUser, categories: Categories) -> dict[str, object]:
    category = categories.create_category(user.uid, payload.name, payload.type, icon=payload.icon)
    return success_response(category.to_dict())


@app.patch("/api/categories/{category_id}")
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    user: CurrentUser,
    categories: Categories,
) -> dict[str, object]:
    category = categories.update_category(user.uid, category_id, payload.model_dump(exclude_unset=True))
    return success_response(category.to_dict())


@app.delete("/api/categories/{category_id}")
def delete_category(category_id: int, user: CurrentUser, categories: Categories) -> dict[str, object]:
    categories.delete_category(user.uid, category_id)
    return success_response({"message": "Category deleted successfully"})


# Routes: transactions ------------------------------------------------------


@app.get("/api/transaction")
def list_transactions(
    user: CurrentUser,
    transactions: Transactions,
    wallet_id: Annotated[Optional[int], Query(gt=0)] = None,
    category_id: Annotated[Optional[int], Query(gt=0)] = None,
    type: Annotated[Optional[EntryType], Query()] = None,
    start_date: Annotated[Optional[datetime], Query()] = None,
    end_date: Annotated[Optional[datetime], Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict[str, object]:
    result = transactions.list_transactions(
        user.uid,
        wallet_id=wallet_id,
        category_id=category_id,
        entry_type=type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return success_response([item.to_dict() for item in result.items], result.meta())


@app.get("/api/transaction/recent")
def recent_transactions(user: CurrentUser, transactions: Transactions) -> dict[str, object]:
    return success_response([item.to_dict() for item in transactions.recent(user.uid)])


@app.post("/api/transaction", status_code=201)
def create_transaction(payload: TransactionCreate, user: CurrentUser, transactions: Transactions) -> dict[str, object]:
    transaction = transactions.create(
        user.uid,
        wallet_id=payload.wallet_id,
        entry_type=payload.type,
        amount=payload.amount,
        transaction_date=payload.transaction_date,
        category_id=payload.category_id,
        description=payload.description,
        notes=payload.notes,
    )
    return success_response(transaction.to_dict())


@app.get("/api/transaction/{transaction_id}")
def get_transaction(transaction_id: int, user: CurrentUser, transactions: Transactions) -> dict[str, object]:
    return success_response(transactions.get(user.uid, transaction_id).to_dict())


@app.put("/api/transaction/{transaction_id}")
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    user: CurrentUser,
    transactions: Transactions,
) -> dict[str, object]:
    transaction = transactions.update(user.uid, transaction_id, payload.model_dump(exclude_unset=True))
    return success_response(transaction.to_dict())


@app.delete("/api/transaction/{transaction_id}")
def delete_transaction(transaction_id: int, user: CurrentUser, transactions: Transactions) -> dict[str, object]:
    transactions.delete(user.uid, transaction_id)
    return success_response({"message": "Transaction deleted successfully"})


# Routes: transfers ---------------------------------------------------------


@app.get("/api/transfer")
def list_transfers(
    user: CurrentUser,
    transfers: Transfers,
    wallet_id: Annotated[Optional[int], Query(gt=0)] = None,
    start_date: Annotated[Optional[datetime], Query()] = None,
    end_date: Annotated[Optional[datetime], Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> dict[str, object]:
    result = transfers.list_transfers(
        user.uid,
        wallet_id=wallet_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return success_response([item.to_dict() for item in result.items], result.meta())


@app.post("/api/transfer", status_code=201)
def create_transfer(payload: TransferCreate, user: CurrentUser, transfers: Transfers) -> dict[str, object]:
    transfer = transfers.create(
        user.uid,
        from_wallet_id=payload.from_wallet_id,
        to_wallet_id=payload.to_wallet_id,
        amount=payload.amount,
        fee=payload.fee,
        transfer_date=payload.transfer_date,
        description=payload.description,
    )
    return success_response(transfer.to_dict())


@app.get("/api/transfer/{transfer_id}")
def get_transfer(transfer_id: int, user: CurrentUser, transfers: Transfers) -> dict[str, object]:
    return success_response(transfers.get(user.uid, transfer_id).to_dict())


@app.delete("/api/transfer/{transfer_id}")
def delete_transfer(transfer_id: int, user: CurrentUser, transfers: Transfers) -> dict[str, object]:
    transfers.delete(user.uid, transfer_id)
    return success_response({"message": "Transfer deleted and balance rolled back"})


# Routes: dashboard and statistics ------------------------------------------


@app.get("/api/dashboard")
def dashboard(user: CurrentUser, statistics: Statistics) -> dict[str, object]:
    return success_response(statistics.dashboard(user.uid))


@app.get("/api/statistics/monthly")
def monthly_statistics(
    user: CurrentUser,
    statistics: Statistics,
    months: Annotated[int, Query(ge=1, le=36)] = 6,
) -> dict[str, object]:
    return success_response(statistics.monthly(user.uid, months=months))


@app.get("/api/statistics/category")
def category_statistics(
    user: CurrentUser,
    statistics: Statistics,
    type: Annotated[Optional[EntryType], Query()] = None,
    start_date: Annotated[Optional[datetime], Query()] = None,
    end_date: Annotated[Optional[datetime], Query()] = None,
) -> dict[str, object]:
    return success_response(statistics.by_category(user.uid, entry_type=type, start=start_date, end=end_date))


@app.get("/api/statistics/wallet")
def wallet_statistics(user: CurrentUser, statistics: Statistics) -> dict[str, object]:
    return success_response(statistics.by_wallet(user.uid))


@app.get("/api/statistics/trends")
def trend_statistics(
    user: CurrentUser,
    statistics: Statistics,
    days: Annotated[int, Query(ge=1, le=366)] = 30,
) -> dict[str, object]:
    return success_response(statistics.trends(user.uid, days=days))
