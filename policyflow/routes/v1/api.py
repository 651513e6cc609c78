from fastapi import APIRouter

from policyflow.policies.router import router as policies_router, admin_router
from policyflow.departments.router import router as departments_router
from policyflow.users.router import router as users_router

api_router = APIRouter()

api_router.include_router(policies_router)
api_router.include_router(departments_router)
api_router.include_router(users_router)
api_router.include_router(admin_router)
