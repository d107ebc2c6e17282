import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field

from lending.config import settings
from lending.library import CheckoutOutcome, Library

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

library = Library()

app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Security ---
api_key_header = APIKeyHeader(name="X-API-Key")

def get_api_key(api_key: str = Security(api_key_header)):
    """Dependency that checks the API key on mutating endpoints."""
    if api_key == settings.api_key:
        return api_key
    raise HTTPException(status_code=403, detail="Could not validate credentials")

# --- Models ---
class BookModel(BaseModel):
    id: Optional[int] = None
    isbn: str
    title: str
    author: str
    publication_year: int = 0
    status: str

class StockModel(BookModel):
    available: int
    borrowed: int
    earmarked: int

class BookCreateModel(BaseModel):
    isbn: str
    title: str = ""
    author: str = ""
    publication_year: int = 0
    copies: int = Field(default=1, description="Number of copies to add")

class UpdateBookModel(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    publication_year: Optional[int] = None

class PatronCreateModel(BaseModel):
    name: str
    email: str = ""

class PatronModel(BaseModel):
    id: int
    name: str
    email: str
    borrowed: List[str]

class LendingRequest(BaseModel):
    patron_id: int

class CheckoutResponse(BaseModel):
    isbn: str
    patron_id: int
    outcome: str
    success: bool
    reserved: bool

class ReservationModel(BaseModel):
    isbn: str
    waiting: List[PatronModel]
    earmarked_for: List[PatronModel]

class NotificationModel(BaseModel):
    isbn: str
    title: str
    patron_id: int
    patron_name: str
    patron_email: str
    sent_at: str

class StatsModel(BaseModel):
    total_books: int
    total_copies: int
    available_copies: int
    borrowed_copies: int
    earmarked_copies: int
    unique_authors: int
    total_patrons: int
    pending_reservations: int
    notifications_sent: int


def _stock_model(isbn: str) -> StockModel:
    book = library.find_book(isbn)
    counters = library.stock(isbn)
    if not book or not counters:
        raise HTTPException(status_code=404, detail="Book not found.")
    return StockModel(**book.to_dict(), available=counters["available"], borrowed=counters["borrowed"],
                      earmarked=counters["earmarked"])

def _patron_model(patron) -> PatronModel:
    data = patron.to_dict()
    return PatronModel(id=data["id"], name=data["name"], email=data["email"], borrowed=data["borrowed"])

def _require_patron(patron_id: int):
    patron = library.get_patron(patron_id)
    if not patron:
        raise HTTPException(status_code=404, detail=f"Patron {patron_id} not found.")
    return patron

# --- Health ---
@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name, "version": settings.app_version,
            "auto_reserve": library.auto_reserve}

# --- Books ---
@app.get("/books", response_model=List[StockModel])
def list_books():
    """List every title with its copy counters. Titles purged meanwhile are skipped."""
    items = []
    for book in library.list_books():
        counters = library.stock(book.isbn)
        if counters is None:
            continue
        items.append(StockModel(**{**book.to_dict(), **counters}))
    return items

@app.get("/books/search", response_model=List[BookModel])
def search_books(q: str = Query(..., description="Search query"),
                 kind: str = Query("title", description="title | author | isbn"),
                 limit: int = Query(settings.default_search_limit, ge=1)):
    """Search by kind; unknown kinds fall back to a title search."""
    return [BookModel(**b.to_dict()) for b in library.search(kind, q)[:limit]]

@app.get("/books/{isbn}", response_model=StockModel)
def get_book(isbn: str):
    return _stock_model(isbn)

@app.post("/books", response_model=StockModel, dependencies=[Depends(get_api_key)])
def add_book(payload: BookCreateModel):
    """Add copies of a title, registering it on first insertion."""
    try:
        book = library.add_book(payload.isbn, payload.title, payload.author, payload.publication_year,
                                payload.copies)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _stock_model(book.isbn)

@app.put("/books/{isbn}", response_model=BookModel, dependencies=[Depends(get_api_key)])
def update_book(isbn: str, update: UpdateBookModel):
    if not update.title and not update.author and not update.publication_year:
        raise HTTPException(status_code=400, detail="Provide title, author and/or publication_year to update.")
    book = library.update_book(isbn, title=update.title, author=update.author, year=update.publication_year)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found.")
    return BookModel(**book.to_dict())

@app.delete("/books/{isbn}", dependencies=[Depends(get_api_key)])
def delete_copies(isbn: str, copies: int = Query(1, description="Number of available copies to withdraw")):
    if not library.find_book(isbn):
        raise HTTPException(status_code=404, detail="Book not found.")
    try:
        removed = library.remove_book(isbn, copies)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not removed:
        raise HTTPException(status_code=409, detail="Not enough available copies to remove.")
    purged = library.find_book(isbn) is None
    if purged:
        logger.info(f"Title {isbn} withdrawn from the catalog")
    return {"message": "Copies removed.", "purged": purged}

# --- Lending ---
@app.post("/books/{isbn}/checkout", response_model=CheckoutResponse, dependencies=[Depends(get_api_key)])
def checkout(isbn: str, payload: LendingRequest):
    _require_patron(payload.patron_id)
    outcome = library.checkout_outcome(isbn, payload.patron_id)
    if outcome == CheckoutOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Book not found.")
    response = CheckoutResponse(isbn=isbn, patron_id=payload.patron_id, outcome=outcome.value,
                                success=outcome.success, reserved=outcome == CheckoutOutcome.RESERVED)
    if not outcome.success:
        raise HTTPException(status_code=409, detail=response.model_dump())
    return response

@app.post("/books/{isbn}/return", dependencies=[Depends(get_api_key)])
def return_copy(isbn: str, payload: LendingRequest):
    _require_patron(payload.patron_id)
    if not library.find_book(isbn):
        raise HTTPException(status_code=404, detail="Book not found.")
    if not library.return_book(isbn, payload.patron_id):
        raise HTTPException(status_code=409, detail="No outstanding loan recorded for this title.")
    return _stock_model(isbn)

@app.post("/books/{isbn}/collect", response_model=StockModel, dependencies=[Depends(get_api_key)])
def collect(isbn: str, payload: LendingRequest):
    _require_patron(payload.patron_id)
    if not library.collect(isbn, payload.patron_id):
        raise HTTPException(status_code=409, detail="No copy is set aside for this patron.")
    return _stock_model(isbn)

@app.post("/books/{isbn}/reserve", response_model=ReservationModel, dependencies=[Depends(get_api_key)])
def reserve(isbn: str, payload: LendingRequest):
    _require_patron(payload.patron_id)
    if not library.reserve(isbn, payload.patron_id):
        raise HTTPException(status_code=404, detail="Book not found.")
    return get_reservations(isbn)

@app.get("/books/{isbn}/reservations", response_model=ReservationModel)
def get_reservations(isbn: str):
    book = library.find_book(isbn)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found.")
    return ReservationModel(
        isbn=book.isbn,
        waiting=[_patron_model(p) for p in library.waiting_list(book.isbn)],
        earmarked_for=[_patron_model(p) for p in library.inventory.earmarked_for(book.isbn)],
    )

# --- Patrons ---
@app.get("/patrons", response_model=List[PatronModel])
def list_patrons():
    return [_patron_model(p) for p in library.list_patrons()]

@app.post("/patrons", response_model=PatronModel, dependencies=[Depends(get_api_key)])
def add_patron(payload: PatronCreateModel):
    try:
        patron = library.add_patron(payload.name, payload.email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _patron_model(patron)

@app.get("/patrons/{patron_id}", response_model=PatronModel)
def get_patron(patron_id: int):
    return _patron_model(_require_patron(patron_id))

@app.get("/patrons/{patron_id}/recommendations", response_model=List[BookModel])
def recommendations(patron_id: int, limit: int = Query(settings.default_recommendation_limit, ge=1)):
    _require_patron(patron_id)
    return [BookModel(**b.to_dict()) for b in library.recommend_for_patron(patron_id, limit)]

# --- Reporting ---
@app.get("/notifications", response_model=List[NotificationModel])
def notifications(patron_id: Optional[int] = None):
    if patron_id is not None:
        notices = library.notifier.notices_for(patron_id)
    else:
        notices = library.notifications
    return [NotificationModel(**n.to_dict()) for n in notices]

@app.get("/stats", response_model=StatsModel)
def get_library_stats():
    return StatsModel(**library.get_statistics())
