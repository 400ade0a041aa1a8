"""A car that burns fuel from a tank as it drives."""

from __future__ import annotations

MILES_PER_GALLON = 20


class FuelTank:
    """Fuel store consulted and drained by :class:`Car`."""

    def fuel(self) -> int:
        """Return the gallons left in the tank."""
        raise NotImplementedError

    def burn(self, gallons: int) -> None:
        """Remove *gallons* from the tank."""
        raise NotImplementedError


class Car:
    """A coloured car with a fuel tank and an odometer."""

    def __init__(self, color: str, fuel_tank: FuelTank | None = None) -> None:
        self.color = color
        self.fuel_tank = fuel_tank if fuel_tank is not None else FuelTank()
        self.odometer = 0

    def is_popular(self) -> bool:
        """Red cars sell best."""
        return self.color == "red"

    def range(self) -> int:
        """Return how many miles the fuel left in the tank allows."""
        return self.fuel_tank.fuel() * MILES_PER_GALLON

    def drive(self, miles: int) -> None:
        """Drive *miles*, burning fuel and advancing the odometer."""
        self.fuel_tank.burn(miles // MILES_PER_GALLON)
        self.odometer += miles
