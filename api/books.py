from __future__ import annotations

from flask import Blueprint, request, jsonify, g

from api.dependencies import get_rental_service
from models.schemas.book import BookOutSchema, SearchBooksSchema
from utils.decorators import jwt_required

bp = Blueprint("books", __name__)

# Schemas
book_out_schema = BookOutSchema()
books_out_schema = BookOutSchema(many=True)
search_schema = SearchBooksSchema()


@bp.get("/books")
@jwt_required()
def list_books():
    """List the books of the caller's bookstore."""
    books = get_rental_service().list_books(g.current_user)
    return jsonify({"data": books_out_schema.dump(books), "meta": {"total": len(books)}})


@bp.get("/books/search")
@jwt_required()
def search_books():
    """
    Case-insensitive search on title or author within the caller's bookstore.
    Query: ?query=<text>
    """
    args = search_schema.load(request.args.to_dict())
    books = get_rental_service().search_books(args["query"], g.current_user)
    return jsonify(
        {
            "data": books_out_schema.dump(books),
            "meta": {"total": len(books), "query": args["query"]},
        }
    )


@bp.post("/books/<book_id>/rent")
@jwt_required()
def rent_book(book_id: str):
    """
    Rent one copy of a book.
    200 updated book | 404 not in caller's bookstore | 422 no copies left | 409 already rented
    """
    book = get_rental_service().rent_book(book_id, g.current_user)
    return jsonify({"data": book_out_schema.dump(book)}), 200


@bp.post("/books/<book_id>/return")
@jwt_required()
def return_book(book_id: str):
    """
    Return a rented copy.
    200 updated book | 404 not in caller's bookstore | 422 no open rental
    """
    book = get_rental_service().return_book(book_id, g.current_user)
    return jsonify({"data": book_out_schema.dump(book)}), 200
