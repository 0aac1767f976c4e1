# wecare/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from wecare.core.config import settings
from wecare.core.errors import WeCareError
from wecare.deps import get_repo
from wecare.routers import admin, ai, auth, categories, donations, users
from wecare.services.users import seed

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # honour dependency_overrides so startup seeds the store the routes will use
    repo = app.dependency_overrides.get(get_repo, get_repo)()
    await repo.ensure_indexes()
    await seed(repo, settings.admin_email, settings.admin_password)
    logger.info("%s ready (store=%s)", settings.app_name, type(repo).__name__)
    yield
    if settings.use_mongo:
        from wecare.core.db import get_client
        get_client().close()


app = FastAPI(lifespan=lifespan, title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(WeCareError)
async def wecare_error_handler(request: Request, exc: WeCareError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.__class__.__name__)
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)

# malformed input is a 400 like every other validation failure
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"detail": "Invalid input"}, status_code=400)

app.include_router(auth.router)             # /auth
app.include_router(users.router)            # /users
app.include_router(categories.router)       # /categories
app.include_router(donations.router)        # /donations
app.include_router(admin.router)            # /admin
app.include_router(ai.router)               # /ai

app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

@app.get("/health")
async def health(repo=Depends(get_repo)):
    return {"ok": await repo.ping()}
