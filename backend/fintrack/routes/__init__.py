from fastapi import APIRouter
from fintrack.routes import auth, transactions, users

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
