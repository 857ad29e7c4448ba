from __future__ import annotations

import logging
from typing import Any

from skyreserve.accounts.service import AccountService
from skyreserve.db.repositories import LoyaltyProgramRepository
from skyreserve.errors import DuplicateProgram
from skyreserve.models.domain import AdminPermission, LoyaltyProgram

logger = logging.getLogger(__name__)


class LoyaltyProgramCatalog:
    def __init__(
        self,
        repository: LoyaltyProgramRepository | None = None,
        accounts: AccountService | None = None,
    ) -> None:
        self.repository = repository or LoyaltyProgramRepository()
        self.accounts = accounts or AccountService()

    def list_programs(self) -> list[LoyaltyProgram]:
        return self.repository.list()

    def add_program(self, program: LoyaltyProgram | dict[str, Any]) -> LoyaltyProgram:
        program = program if isinstance(program, LoyaltyProgram) else LoyaltyProgram.model_validate(program)
        if self.repository.get(program.program_id) is not None:
            raise DuplicateProgram(program_id=program.program_id)
        self.repository.put(program)
        logger.info("loyalty program %s added", program.program_id)
        return program

    def replace_programs(self, admin_id: str, programs: list[LoyaltyProgram | dict[str, Any]]) -> list[LoyaltyProgram]:
        """Swap the whole catalog for ``programs`` on behalf of an admin."""
        self.accounts.authorize_admin(admin_id, AdminPermission.MANAGE_LOYALTY_PROGRAMS)
        parsed = [item if isinstance(item, LoyaltyProgram) else LoyaltyProgram.model_validate(item) for item in programs]
        seen: set[str] = set()
        for program in parsed:
            if program.program_id in seen:
                raise DuplicateProgram(program_id=program.program_id)
            seen.add(program.program_id)
        self.repository.replace_all(parsed)
        logger.info("admin %s replaced loyalty catalog with %d program(s)", admin_id, len(parsed))
        return parsed
