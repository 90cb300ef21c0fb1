from dataclasses import dataclass


@dataclass
class CarbonStockParameters:
    enable_carbon_stock: bool = True
    biomass_intercept: float = 34.4703
    biomass_linear_coefficient: float = -8.0671
    biomass_quadratic_coefficient: float = 0.6589
    below_ground_ratio: float = 0.15
    carbon_fraction: float = 0.5
    oxygen_to_co2_ratio: float = 0.727


@dataclass(frozen=True)
class CarbonStockEstimate:
    dbh_centimeters: float
    above_ground_biomass_kg: float
    below_ground_biomass_kg: float
    total_biomass_kg: float
    carbon_kg: float
    co2_equivalent_kg: float
    oxygen_kg: float

    def to_record(self) -> dict:
        return {
            "dbh_centimeters": round(self.dbh_centimeters, 3),
            "above_ground_biomass_kg": round(self.above_ground_biomass_kg, 2),
            "below_ground_biomass_kg": round(self.below_ground_biomass_kg, 2),
            "total_biomass_kg": round(self.total_biomass_kg, 2),
            "carbon_kg": round(self.carbon_kg, 2),
            "co2_equivalent_kg": round(self.co2_equivalent_kg, 2),
            "oxygen_kg": round(self.oxygen_kg, 2),
        }


def estimate_carbon_stock(dbh_centimeters: float, parameters: CarbonStockParameters) -> CarbonStockEstimate:
    above_ground_biomass = max(
        0.0,
        parameters.biomass_intercept
        + parameters.biomass_linear_coefficient * dbh_centimeters
        + parameters.biomass_quadratic_coefficient * dbh_centimeters**2,
    )
    below_ground_biomass = above_ground_biomass * parameters.below_ground_ratio
    total_biomass = above_ground_biomass + below_ground_biomass
    carbon = total_biomass * parameters.carbon_fraction
    co2_equivalent = carbon * 44.0 / 12.0
    return CarbonStockEstimate(
        dbh_centimeters=float(dbh_centimeters),
        above_ground_biomass_kg=above_ground_biomass,
        below_ground_biomass_kg=below_ground_biomass,
        total_biomass_kg=total_biomass,
        carbon_kg=carbon,
        co2_equivalent_kg=co2_equivalent,
        oxygen_kg=co2_equivalent * parameters.oxygen_to_co2_ratio,
    )
