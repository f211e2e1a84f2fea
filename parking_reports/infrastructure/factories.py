# File: parking_reports/infrastructure/factories.py
"""
Factory Pattern Implementation for the Booking Report Engine

1. BookingFactory - bookings for tests, demo mode and fixtures
2. ProfileFactory - customer profiles billed on invoices

Random bookings are spread around a reference instant so that demo data
always contains ongoing, upcoming and past bookings.
"""

from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional, List, Union
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import random
import string
from uuid import uuid4

from ..domain.models import Booking, CustomerProfile, ensure_aware
from ..application.dtos import BookingDTO, ProfileDTO

T = TypeVar('T')


# ============================================================================
# FACTORY INTERFACES
# ============================================================================

class Factory(ABC, Generic[T]):
    """Base factory interface"""

    @abstractmethod
    def create(self, **kwargs) -> T:
        """Create an instance of T"""
        pass

    @abstractmethod
    def create_many(self, count: int, **kwargs) -> List[T]:
        """Create multiple instances"""
        pass


# ============================================================================
# DOMAIN OBJECT FACTORIES
# ============================================================================

class BookingFactory(Factory[Booking]):
    """Factory for creating Booking domain objects"""

    COMPANIES = ["Toyota", "Honda", "Hyundai", "Maruti", "Tata", "Mahindra", "Kia"]
    CATEGORIES = ["Car", "Bike", "SUV", "Truck"]
    LOCATIONS = ["Downtown", "Airport", "Mall Road", "Tech Park", "Railway Station"]
    NAMES = ["Aarav Shah", "Diya Patel", "Kabir Rao", "Meera Iyer", "Rohan Das", "Sara Khan"]

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def create(
        self,
        in_time: Union[datetime, str],
        out_time: Optional[Union[datetime, str]] = None,
        total_spent: Union[Decimal, int, float, str] = Decimal("0"),
        booking_id: Optional[str] = None,
        customer_name: Optional[str] = None,
        company: Optional[str] = None,
        registration_number: Optional[str] = None,
        category: Optional[str] = None,
        location: Optional[str] = None
    ) -> Booking:
        """Create a booking; the id defaults to a random hex string"""
        return Booking(
            id=booking_id or uuid4().hex,
            in_time=in_time,
            out_time=out_time,
            total_spent=Decimal(str(total_spent)),
            customer_name=customer_name,
            company=company,
            registration_number=registration_number,
            category=category,
            location=location,
        )

    def create_many(self, count: int, id_prefix: str = "BK", **kwargs) -> List[Booking]:
        """Create multiple bookings sharing the given fields, with sequential ids"""
        bookings = []
        for i in range(count):
            booking_kwargs = kwargs.copy()
            booking_kwargs['booking_id'] = f"{id_prefix}{str(i + 1).zfill(4)}"
            bookings.append(self.create(**booking_kwargs))
        return bookings

    def create_from_dto(self, dto: BookingDTO) -> Booking:
        """Create booking from DTO"""
        return dto.to_domain()

    def create_random(self, now: Optional[datetime] = None) -> Booking:
        """Create a random booking within two days either side of `now`"""
        now = ensure_aware(now) if now is not None else datetime.now(timezone.utc)
        rnd = self._random

        in_time = now + timedelta(hours=rnd.randint(-48, 48))
        out_time = None
        if rnd.random() < 0.7:
            out_time = in_time + timedelta(hours=rnd.randint(1, 12))

        plate = ''.join(rnd.choices(string.ascii_uppercase, k=2)) + \
            str(rnd.randint(10, 99)) + \
            ''.join(rnd.choices(string.ascii_uppercase, k=2)) + \
            str(rnd.randint(1000, 9999))

        return self.create(
            booking_id=''.join(rnd.choices(string.hexdigits.lower(), k=24)),
            in_time=in_time,
            out_time=out_time,
            total_spent=Decimal(rnd.randint(20, 500)),
            customer_name=rnd.choice(self.NAMES),
            company=rnd.choice(self.COMPANIES),
            registration_number=plate,
            category=rnd.choice(self.CATEGORIES),
            location=rnd.choice(self.LOCATIONS),
        )

    def create_random_many(self, count: int, now: Optional[datetime] = None) -> List[Booking]:
        return [self.create_random(now) for _ in range(count)]


class ProfileFactory(Factory[CustomerProfile]):
    """Factory for creating customer profiles"""

    def create(
        self,
        first_name: str = "Demo",
        last_name: str = "User",
        email: Optional[str] = "demo@eazyparking.tech",
        mobile_number: Optional[str] = None
    ) -> CustomerProfile:
        return CustomerProfile(
            first_name=first_name,
            last_name=last_name,
            email=email,
            mobile_number=mobile_number,
        )

    def create_many(self, count: int, **kwargs) -> List[CustomerProfile]:
        return [self.create(**kwargs) for _ in range(count)]

    def create_from_dto(self, dto: ProfileDTO) -> CustomerProfile:
        return dto.to_domain()
