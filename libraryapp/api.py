import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader

from libraryapp.catalog import Catalog
from libraryapp.config import settings
from libraryapp.database import get_db_connection, initialize_database
from libraryapp.exceptions import BookNotFoundError, DuplicateBookError, NoActiveLoanError, NoCapacityError
from libraryapp.ledger import LoanLedger
from libraryapp.queries import LibraryQueries
from libraryapp.schemas import (
    AddBookRequest,
    AvailableCount,
    BatchStatusRequest,
    BookResponse,
    BorrowedBook,
    BorrowResponse,
    BorrowStatus,
    MessageResponse,
    PaginatedBooks,
)
from libraryapp.seed import bootstrap
from libraryapp.status import StatusStore
from libraryapp.users import User, UserDirectory
from libraryapp.validators import ISBNValidator

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Schema and seed data are prepared once per process, before serving
    initialize_database(settings.database_file)
    if settings.seed_on_startup:
        bootstrap(settings.database_file)
    yield


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Unexpected errors ---
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# --- Security ---
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_current_user(api_key: Optional[str] = Security(api_key_header)) -> User:
    """Resolve the X-API-Key header to the API user it was issued to."""
    user = UserDirectory(settings.database_file).find_by_api_key(api_key)
    if user is None:
        raise HTTPException(status_code=403, detail="Could not validate credentials")
    return user


def get_queries() -> LibraryQueries:
    return LibraryQueries(Catalog(settings.database_file), LoanLedger(settings.database_file))


# --- Health check ---
@app.get("/health")
def health():
    """Lightweight health endpoint: a quick database round-trip plus a timestamp."""
    db_ok = True
    try:
        conn = get_db_connection(settings.database_file)
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
    except Exception:
        logger.exception("Health check could not reach the database")
        db_ok = False
    return {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "db": db_ok,
    }


# --- Service status ---
@app.get("/api/status/first", response_model=str, dependencies=[Depends(get_current_user)])
def first_status():
    """Value of the first status row, or an empty string when none exists."""
    logger.info("GetFirstStatus endpoint called")
    return StatusStore(settings.database_file).first_status()


# --- Catalog ---
@app.get("/api/books", response_model=PaginatedBooks, dependencies=[Depends(get_current_user)])
def list_books(
    page_number: int = Query(1, alias="pageNumber", description="Page number (clamped to 1..2**31-1)"),
    page_size: int = Query(settings.default_page_size, alias="pageSize", description="Page size (clamped to 1..100)"),
    name: Optional[str] = Query(None, description="Case-insensitive substring of the name"),
    author: Optional[str] = Query(None, description="Case-insensitive substring of the author"),
    isbn: Optional[str] = Query(None, description="Case-insensitive substring of the ISBN"),
    queries: LibraryQueries = Depends(get_queries),
):
    """List books with optional filters and pagination."""
    return queries.list_books(name=name, author=author, isbn=isbn, page_number=page_number, page_size=page_size)


@app.post("/api/books", response_model=BookResponse, status_code=201, dependencies=[Depends(get_current_user)])
def add_book(
    payload: AddBookRequest,
    queries: LibraryQueries = Depends(get_queries),
):
    """Add a title to the catalog. Name, author and ISBN together must be unique."""
    try:
        return queries.add_book(payload)
    except DuplicateBookError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/api/books/validate-isbn", response_model=bool, dependencies=[Depends(get_current_user)])
def validate_isbn(isbn: str = Query("", description="ISBN-13, hyphens allowed")):
    """True when the value passes the ISBN-13 checksum; a blank value is simply false."""
    if not isbn.strip():
        return False
    return ISBNValidator.validate_isbn13(isbn)


@app.get("/api/books/name-suggestions", response_model=List[str], dependencies=[Depends(get_current_user)])
def name_suggestions(
    prefix: str = Query("", description=f"At least {settings.suggestion_min_prefix} characters"),
    queries: LibraryQueries = Depends(get_queries),
):
    if not prefix.strip() or len(prefix) < settings.suggestion_min_prefix:
        return []
    return queries.suggest_names(prefix)


@app.get("/api/books/author-suggestions", response_model=List[str], dependencies=[Depends(get_current_user)])
def author_suggestions(
    prefix: str = Query("", description=f"At least {settings.suggestion_min_prefix} characters"),
    queries: LibraryQueries = Depends(get_queries),
):
    if not prefix.strip() or len(prefix) < settings.suggestion_min_prefix:
        return []
    return queries.suggest_authors(prefix)


# --- Lending ---
@app.post("/api/books/borrow-status/batch", response_model=Dict[str, BorrowStatus])
def batch_borrow_status(
    payload: BatchStatusRequest,
    user: User = Depends(get_current_user),
    queries: LibraryQueries = Depends(get_queries),
):
    """Borrow status of several books at once. Unknown ids are omitted from the result."""
    return queries.batch_status(payload.book_ids, user.id)


@app.get("/api/books/my-borrowed-books", response_model=List[BorrowedBook])
def my_borrowed_books(
    user: User = Depends(get_current_user),
    queries: LibraryQueries = Depends(get_queries),
):
    """Active loans of the calling user, oldest first."""
    return queries.borrowed_books(user.id)


@app.post("/api/books/{book_id}/borrow", response_model=BorrowResponse)
def borrow_book(
    book_id: str,
    user: User = Depends(get_current_user),
    queries: LibraryQueries = Depends(get_queries),
):
    try:
        return queries.borrow(book_id, user.id)
    except BookNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NoCapacityError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.post("/api/books/{book_id}/return", response_model=MessageResponse)
def return_book(
    book_id: str,
    user: User = Depends(get_current_user),
    queries: LibraryQueries = Depends(get_queries),
):
    try:
        return queries.return_book(book_id, user.id)
    except BookNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NoActiveLoanError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/books/{book_id}/borrow-status", response_model=BorrowStatus)
def borrow_status(
    book_id: str,
    user: User = Depends(get_current_user),
    queries: LibraryQueries = Depends(get_queries),
):
    try:
        return queries.status(book_id, user.id)
    except BookNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/api/books/{book_id}/available-count", response_model=AvailableCount, dependencies=[Depends(get_current_user)])
def available_count(
    book_id: str,
    queries: LibraryQueries = Depends(get_queries),
):
    try:
        return queries.available_count(book_id)
    except BookNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
