from __future__ import annotations

import logging

from skyreserve.db.repositories import AdminRepository, CustomerRepository
from skyreserve.errors import AdminNotFound, EmailAlreadyRegistered, InvalidCredentials, MissingField, PermissionDenied
from skyreserve.ids import IdGenerator
from skyreserve.models.domain import Admin, AdminPermission, Customer, Identity

logger = logging.getLogger(__name__)


def _require_fields(**values: str | None) -> None:
    missing = sorted(name for name, value in values.items() if not value)
    if missing:
        raise MissingField(f"Missing required fields: {', '.join(missing)}.", fields=missing)


class AccountService:
    """Customer and admin sign-up and login.

    Passwords are opaque credentials compared by exact match.
    """

    def __init__(
        self,
        customers: CustomerRepository | None = None,
        admins: AdminRepository | None = None,
        ids: IdGenerator | None = None,
    ) -> None:
        self.customers = customers or CustomerRepository()
        self.admins = admins or AdminRepository()
        self.ids = ids or IdGenerator()

    def register_customer(self, name: str, email: str, password: str) -> Customer:
        _require_fields(name=name, email=email, password=password)
        if self.customers.find_by_email(email) is not None:
            raise EmailAlreadyRegistered(email=email)
        customer = Customer(user_id=self._new_customer_id(), name=name, email=email, password=password)
        self.customers.put(customer)
        logger.info("customer %s registered", customer.user_id)
        return customer

    def login_customer(self, email: str, password: str) -> Customer:
        _require_fields(email=email, password=password)
        customer = self.customers.find_by_email(email)
        if customer is None or customer.password != password:
            raise InvalidCredentials()
        return customer

    def register_admin(self, name: str, email: str, password: str) -> Admin:
        _require_fields(name=name, email=email, password=password)
        if any(admin.identity.email == email for admin in self.admins.list()):
            raise EmailAlreadyRegistered("Admin email already registered.", email=email)
        admin = Admin(
            identity=Identity(user_id=self._new_admin_id(), name=name, email=email, password=password),
            permissions=[AdminPermission.MANAGE_FLIGHTS, AdminPermission.MANAGE_LOYALTY_PROGRAMS],
        )
        self.admins.put(admin)
        logger.info("admin %s registered", admin.user_id)
        return admin

    def login_admin(self, email: str, password: str) -> Admin:
        _require_fields(email=email, password=password)
        for admin in self.admins.list():
            if admin.identity.email == email and admin.identity.password == password:
                return admin
        raise InvalidCredentials()

    def authorize_admin(self, admin_id: str, permission: AdminPermission) -> Admin:
        admin = self.admins.get(admin_id)
        if admin is None:
            raise AdminNotFound(admin_id=admin_id)
        if not admin.can(permission):
            raise PermissionDenied(admin_id=admin_id, permission=permission.value)
        return admin

    def _new_customer_id(self) -> str:
        customer_id = self.ids.customer_id()
        while self.customers.get(customer_id) is not None:
            customer_id = self.ids.customer_id()
        return customer_id

    def _new_admin_id(self) -> str:
        admin_id = self.ids.admin_id()
        while self.admins.get(admin_id) is not None:
            admin_id = self.ids.admin_id()
        return admin_id
