from dataclasses import dataclass
import math


@dataclass
class Daylight:
  latitude: float

  def day_length(self, day_of_year: int) -> float:
    # Approximate daylight hours: 12 +/- seasonal swing that widens with latitude.
    # Not astronomy-grade; good enough for solar melt and diurnal shaping.
    lat = abs(self.latitude)
    lat_factor = min(lat/90.0, 1.0)
    swing = 12.0*lat_factor**1.5
    hours = 12 + swing*math.sin(2*math.pi*(day_of_year - 80)/365.0)
    return max(0.0, min(24.0, hours))

  def sunrise_sunset(self, day_of_year: int) -> tuple[float, float]:
    half = self.day_length(day_of_year)/2
    return 12.0 - half, 12.0 + half

  def is_daytime(self, date) -> bool:
    sunrise, sunset = self.sunrise_sunset(date.day_of_year)
    return sunrise <= date.hour < sunset
