import logging
from contextlib import asynccontextmanager
from typing import List, Optional, Union

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from config import settings
from exceptions import LibraryError
from library import Library
from timestamps import format_timestamp, utc_now
from validators import FieldValidator

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

# Conflicts are reported as 400 like every other rejected request
ERROR_STATUS = {
    "validation_error": 400,
    "not_found": 404,
    "conflict": 400,
}

IdValue = Union[int, str]


# --- Models ---
class CamelModel(BaseModel):
    """Serialized with camelCase keys; accepts either camelCase or snake_case on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookModel(CamelModel):
    id: int
    title: str
    author: str
    isbn: str
    copies: int
    available_copies: int
    category: str
    description: str
    date_added: str


class BorrowerModel(CamelModel):
    id: int
    name: str
    email: str
    phone: str
    registration_date: str
    active_loans: int


class BorrowRecordModel(CamelModel):
    id: int
    book_id: int
    borrower_id: int
    book_title: str
    borrower_name: str
    borrow_date: str
    due_date: str
    returned: bool
    return_date: Optional[str] = None


# Request bodies are permissive: required-field checks belong to the library
# so that a missing title is a 400 with a readable message, not a 422.
class BookCreateModel(CamelModel):
    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    copies: Optional[IdValue] = None
    category: Optional[str] = None
    description: Optional[str] = None


class BookUpdateModel(BookCreateModel):
    pass


class BorrowerCreateModel(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class BorrowRequestModel(CamelModel):
    book_id: Optional[IdValue] = None
    borrower_id: Optional[IdValue] = None
    days_to_return: Optional[IdValue] = None


class ReturnRequestModel(CamelModel):
    borrow_id: Optional[IdValue] = None


class BookListResponse(CamelModel):
    books: List[BookModel]
    total: int


class SearchResponse(CamelModel):
    results: List[BookModel]
    total: int


class BookResponse(CamelModel):
    book: BookModel


class BookMessageResponse(CamelModel):
    message: str
    book: BookModel


class MessageResponse(CamelModel):
    message: str


class CategoriesResponse(CamelModel):
    categories: List[str]


class BorrowerListResponse(CamelModel):
    borrowers: List[BorrowerModel]
    total: int


class BorrowerMessageResponse(CamelModel):
    message: str
    borrower: BorrowerModel


class BorrowRecordMessageResponse(CamelModel):
    message: str
    borrow_record: BorrowRecordModel


class ActiveLoansResponse(CamelModel):
    borrowed_books: List[BorrowRecordModel]
    total: int


class OverdueLoansResponse(CamelModel):
    overdue_books: List[BorrowRecordModel]
    total: int


class StatsModel(CamelModel):
    total_books: int
    total_copies: int
    available_copies: int
    unique_authors: int
    categories: int
    total_borrowers: int
    active_loans: int
    overdue_loans: int


def create_app(library: Optional[Library] = None) -> FastAPI:
    """Build the HTTP facade around one Library instance."""
    library = library or Library()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{settings.app_name} {settings.app_version} ready ({settings.environment})")
        yield
        stats = library.get_statistics()
        logger.info(
            f"Shutting down with {stats['total_books']} books, {stats['total_borrowers']} borrowers "
            f"and {stats['active_loans']} active loans; in-memory state is discarded"
        )

    app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug, lifespan=lifespan)
    app.state.library = library

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        return JSONResponse(
            status_code=ERROR_STATUS.get(exc.kind, 500),
            content={"message": exc.message, "error": exc.kind},
        )

    # --- Status ---
    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "Library Management System is live! Features: Books, Search, Categories, Borrowing"

    @app.get("/health")
    def health():
        problems = library.audit()
        return {
            "status": "healthy",
            "timestamp": format_timestamp(utc_now()),
            "total_books": len(library.catalog.books),
            "consistent": not problems,
            "problems": problems,
        }

    @app.get("/stats", response_model=StatsModel)
    def stats():
        return StatsModel(**library.get_statistics())

    # --- Books ---
    @app.get("/books", response_model=BookListResponse)
    def list_books(
        q: Optional[str] = Query(None, description="Matches title, author or ISBN"),
        category: Optional[str] = Query(None, description="Exact category, any case"),
        available: Optional[str] = Query(None, description="'true' for books on the shelf"),
    ):
        books, total = library.list_books(q=q, category=category,
                                          available=FieldValidator.parse_flag(available or None))
        return BookListResponse(books=[BookModel(**b.to_dict()) for b in books], total=total)

    @app.get("/books/search", response_model=SearchResponse)
    def search_books(
        q: Optional[str] = Query(None, description="Matches title, author, ISBN or description"),
        category: Optional[str] = None,
        author: Optional[str] = Query(None, description="Partial author name"),
        available: Optional[str] = None,
    ):
        results, total = library.search_books(q=q, category=category, author=author,
                                              available=FieldValidator.parse_flag(available))
        return SearchResponse(results=[BookModel(**b.to_dict()) for b in results], total=total)

    @app.get("/books/{book_id}", response_model=BookResponse)
    def get_book(book_id: str):
        return BookResponse(book=BookModel(**library.get_book(book_id).to_dict()))

    @app.post("/books", response_model=BookMessageResponse, status_code=201)
    def add_book(payload: BookCreateModel):
        book = library.add_book(payload.title, payload.author, payload.isbn, payload.copies,
                                category=payload.category, description=payload.description)
        return BookMessageResponse(message="Book added successfully", book=BookModel(**book.to_dict()))

    @app.put("/books/{book_id}", response_model=BookMessageResponse)
    def update_book(book_id: str, payload: BookUpdateModel):
        book = library.update_book(book_id, **payload.model_dump())
        return BookMessageResponse(message="Book updated successfully", book=BookModel(**book.to_dict()))

    @app.delete("/books/{book_id}", response_model=MessageResponse)
    def delete_book(book_id: str):
        library.remove_book(book_id)
        return MessageResponse(message="Book deleted successfully")

    @app.get("/categories", response_model=CategoriesResponse)
    def list_categories():
        return CategoriesResponse(categories=library.list_categories())

    # --- Borrowers ---
    @app.get("/borrowers", response_model=BorrowerListResponse)
    def list_borrowers():
        borrowers, total = library.list_borrowers()
        return BorrowerListResponse(borrowers=[BorrowerModel(**b.to_dict()) for b in borrowers], total=total)

    @app.post("/borrowers", response_model=BorrowerMessageResponse, status_code=201)
    def register_borrower(payload: BorrowerCreateModel):
        borrower = library.register_borrower(payload.name, payload.email, phone=payload.phone)
        return BorrowerMessageResponse(message="Borrower registered successfully",
                                       borrower=BorrowerModel(**borrower.to_dict()))

    # --- Loans ---
    @app.post("/borrow", response_model=BorrowRecordMessageResponse, response_model_exclude_none=True,
              status_code=201)
    def borrow_book(payload: BorrowRequestModel):
        record = library.borrow_book(payload.book_id, payload.borrower_id, payload.days_to_return)
        return BorrowRecordMessageResponse(message="Book borrowed successfully",
                                           borrow_record=BorrowRecordModel(**record.to_dict()))

    @app.post("/return", response_model=BorrowRecordMessageResponse, response_model_exclude_none=True)
    def return_book(payload: ReturnRequestModel):
        record = library.return_book(payload.borrow_id)
        return BorrowRecordMessageResponse(message="Book returned successfully",
                                           borrow_record=BorrowRecordModel(**record.to_dict()))

    @app.get("/borrowed", response_model=ActiveLoansResponse, response_model_exclude_none=True)
    def list_borrowed():
        records, total = library.list_active_loans()
        return ActiveLoansResponse(borrowed_books=[BorrowRecordModel(**r.to_dict()) for r in records], total=total)

    @app.get("/borrowed/overdue", response_model=OverdueLoansResponse, response_model_exclude_none=True)
    def list_overdue():
        records, total = library.list_overdue_loans()
        return OverdueLoansResponse(overdue_books=[BorrowRecordModel(**r.to_dict()) for r in records], total=total)

    return app


app = create_app()
