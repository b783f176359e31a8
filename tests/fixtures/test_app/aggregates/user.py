"""User aggregate and commands for testing."""

from ratchet.domain import Aggregate, Command, Event, InvalidOperation
from ratchet.routing import applies_event, handles_command


# Commands
class RegisterUser(Command[None]):
    name: str


class RenameUser(Command[str]):
    name: str


class DeactivateUser(Command[None]):
    pass


# Events
class UserRegistered(Event):
    name: str


class UserRenamed(Event):
    name: str


class UserDeactivated(Event):
    pass


# Aggregate
class User(Aggregate):
    name: str = ""
    registered: bool = False
    active: bool = False

    @handles_command
    def handle_register(self, cmd: RegisterUser) -> None:
        if self.registered:
            raise InvalidOperation("User already registered")
        if not cmd.name:
            raise InvalidOperation("Name must not be empty")
        self.apply_new(UserRegistered(aggregate_id=self.id, name=cmd.name))

    @handles_command
    def handle_rename(self, cmd: RenameUser) -> str:
        if not self.registered:
            raise InvalidOperation("User is not registered")
        if not cmd.name:
            raise InvalidOperation("Name must not be empty")
        self.apply_new(UserRenamed(aggregate_id=self.id, name=cmd.name))
        return self.name

    @handles_command
    def handle_deactivate(self, cmd: DeactivateUser) -> None:
        if not self.active:
            raise InvalidOperation("User is not active")
        self.apply_new(UserDeactivated(aggregate_id=self.id))

    @applies_event
    def apply_registered(self, evt: UserRegistered) -> None:
        self.name = evt.name
        self.registered = True
        self.active = True

    @applies_event
    def apply_renamed(self, evt: UserRenamed) -> None:
        self.name = evt.name

    @applies_event
    def apply_deactivated(self, evt: UserDeactivated) -> None:
        self.active = False
