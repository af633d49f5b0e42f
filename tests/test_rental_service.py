import pytest

from models.book import Book
from models.rental import Rental
from services.exceptions import (
    AlreadyRentedError,
    ConflictError,
    NoActiveRentalError,
    NotFoundError,
    UnavailableError,
)
from tests.conftest import race


def _quantity(storage, book_id):
    return storage.get(Book, book_id).quantity


def _open_rentals(storage, book_id):
    with storage.transaction() as session:
        return (
            session.query(Rental)
            .filter(Rental.book_id == book_id, Rental.returned_at.is_(None))
            .count()
        )


class TestListAndSearch:
    def test_list_books_is_scoped_to_bookstore(self, rentals, user, make_book, other_bookstore):
        mine = [make_book(title="Book 1"), make_book(title="Book 2")]
        make_book(title="Foreign", store=other_bookstore)

        books = rentals.list_books(user)
        assert [b.id for b in books] == [b.id for b in mine]

    def test_list_books_empty_store(self, rentals, user):
        assert rentals.list_books(user) == []

    def test_search_matches_title_or_author_case_insensitively(
        self, rentals, user, make_book, other_bookstore
    ):
        by_title = make_book(title="The AUTHority", author="Someone")
        by_author = make_book(title="Plain", author="Jane Author")
        make_book(title="Nothing here", author="Nobody")
        make_book(title="Authentic", author="Elsewhere", store=other_bookstore)

        found = rentals.search_books("auth", user)
        assert {b.id for b in found} == {by_title.id, by_author.id}
        assert all(b.bookstore_id == user.bookstore_id for b in found)

    def test_search_treats_wildcards_literally(self, rentals, user, make_book):
        literal = make_book(title="100% Cotton")
        make_book(title="1000 Cotton")
        make_book(title="Snake_case")

        assert [b.id for b in rentals.search_books("100%", user)] == [literal.id]
        assert [b.title for b in rentals.search_books("e_c", user)] == ["Snake_case"]


class TestRentBook:
    def test_rent_decrements_and_opens_rental(self, rentals, storage, user, make_book):
        book = make_book(quantity=5)

        rented = rentals.rent_book(book.id, user)

        assert rented.id == book.id
        assert rented.quantity == 4
        assert _quantity(storage, book.id) == 4
        rental = rentals.get_open_rental(book.id, user)
        assert rental is not None
        assert rental.user_id == user.id
        assert rental.is_open

    def test_unknown_book_is_not_found(self, rentals, user):
        with pytest.raises(NotFoundError):
            rentals.rent_book("missing-book", user)

    def test_book_of_another_bookstore_is_not_found(self, rentals, storage, user, make_book, other_bookstore):
        foreign = make_book(store=other_bookstore, quantity=3)
        with pytest.raises(NotFoundError):
            rentals.rent_book(foreign.id, user)
        assert _quantity(storage, foreign.id) == 3

    def test_zero_quantity_is_unavailable(self, rentals, storage, user, make_book):
        book = make_book(quantity=0)

        with pytest.raises(UnavailableError):
            rentals.rent_book(book.id, user)

        assert _quantity(storage, book.id) == 0
        assert _open_rentals(storage, book.id) == 0

    def test_second_rent_by_same_user_is_rejected(self, rentals, storage, user, make_book):
        book = make_book(quantity=5)
        rentals.rent_book(book.id, user)

        with pytest.raises(AlreadyRentedError) as excinfo:
            rentals.rent_book(book.id, user)

        assert isinstance(excinfo.value, ConflictError)
        assert _quantity(storage, book.id) == 4
        assert _open_rentals(storage, book.id) == 1

    def test_different_users_may_rent_the_same_title(self, rentals, storage, make_user, make_book):
        book = make_book(quantity=2)
        alice = make_user("alice@example.com")
        bob = make_user("bob@example.com")

        rentals.rent_book(book.id, alice)
        rentals.rent_book(book.id, bob)

        assert _quantity(storage, book.id) == 0
        assert _open_rentals(storage, book.id) == 2

        carol = make_user("carol@example.com")
        with pytest.raises(UnavailableError):
            rentals.rent_book(book.id, carol)


class TestReturnBook:
    def test_round_trip_restores_quantity(self, rentals, storage, user, make_book):
        book = make_book(quantity=3)

        rentals.rent_book(book.id, user)
        returned = rentals.return_book(book.id, user)

        assert returned.quantity == 3
        assert _quantity(storage, book.id) == 3
        assert rentals.get_open_rental(book.id, user) is None
        with storage.transaction() as session:
            history = session.query(Rental).filter(Rental.book_id == book.id).all()
        assert len(history) == 1
        assert history[0].returned_at is not None

    def test_return_without_rental_fails(self, rentals, storage, user, make_book):
        book = make_book(quantity=3)

        with pytest.raises(NoActiveRentalError):
            rentals.return_book(book.id, user)
        assert _quantity(storage, book.id) == 3

    def test_double_return_fails(self, rentals, user, make_book):
        book = make_book(quantity=1)
        rentals.rent_book(book.id, user)
        rentals.return_book(book.id, user)

        with pytest.raises(NoActiveRentalError):
            rentals.return_book(book.id, user)

    def test_return_of_unknown_book_is_not_found(self, rentals, user):
        with pytest.raises(NotFoundError):
            rentals.return_book("missing-book", user)

    def test_can_rent_again_after_return(self, rentals, storage, user, make_book):
        book = make_book(quantity=1)
        rentals.rent_book(book.id, user)
        rentals.return_book(book.id, user)

        rented = rentals.rent_book(book.id, user)

        assert rented.quantity == 0
        assert _open_rentals(storage, book.id) == 1

    def test_return_uses_injected_clock(self, storage, user, make_book):
        from datetime import datetime, timezone

        from services.rental_service import RentalService

        fixed = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        service = RentalService(storage, clock=lambda: fixed)
        book = make_book(quantity=1)
        service.rent_book(book.id, user)
        service.return_book(book.id, user)

        with storage.transaction() as session:
            rental = session.query(Rental).filter(Rental.book_id == book.id).populate_existing().one()
        assert rental.returned_at.replace(tzinfo=timezone.utc) == fixed


class TestConcurrentRentAndReturn:
    def test_last_copy_goes_to_exactly_one_user(self, rentals, storage, make_user, make_book):
        book = make_book(quantity=1)
        users = [make_user("first@example.com"), make_user("second@example.com")]

        outcomes = race(storage, lambda u: rentals.rent_book(book.id, u), users)

        assert sorted(outcomes) == ["UnavailableError", "ok"]
        assert _quantity(storage, book.id) == 0
        assert _open_rentals(storage, book.id) == 1

    def test_same_user_cannot_open_two_rentals(self, rentals, storage, user, make_book):
        book = make_book(quantity=5)

        outcomes = race(storage, lambda u: rentals.rent_book(book.id, u), [user, user])

        assert sorted(outcomes) == ["AlreadyRentedError", "ok"]
        assert _quantity(storage, book.id) == 4
        assert _open_rentals(storage, book.id) == 1

    def test_concurrent_returns_restore_quantity_once(self, rentals, storage, user, make_book):
        book = make_book(quantity=1)
        rentals.rent_book(book.id, user)

        outcomes = race(storage, lambda u: rentals.return_book(book.id, u), [user] * 4)

        assert sorted(outcomes) == ["NoActiveRentalError"] * 3 + ["ok"]
        assert _quantity(storage, book.id) == 1
        assert _open_rentals(storage, book.id) == 0
