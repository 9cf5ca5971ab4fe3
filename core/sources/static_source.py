"""Built-in Dutch security job listings, used as seed data and offline source."""

from datetime import datetime, timedelta
from typing import Any, Iterator

from utils.parsing import parse_location

from .base import DataSource

# (job_id, title, company, location, rate, distance km, rating, applicants,
#  hours, type, certificates, starts in days, description)
_SEED_JOBS = [
    ("G4S-OBJ-001", "Objectbeveiliger Winkelcentrum Zuidplein", "G4S Nederland", "Rotterdam Zuid, 3083AA",
     22.50, 2.3, 4.6, 18, 8, "Objectbeveiliging", ["WPBR Diploma A", "BHV Certificaat"], 2,
     "Voor ons grote winkelcentrum in Rotterdam Zuid zoeken wij een ervaren objectbeveiliger voor "
     "dagdiensten. Toegangscontrole, CCTV monitoring, patrouilleren en assistentie bij incidenten."),
    ("TRI-OBJ-002", "Kantoorcomplex Beveiliging Zuidas", "Trigion Beveiliging", "Amsterdam Zuidas, 1082MD",
     26.00, 4.1, 4.4, 12, 8, "Objectbeveiliging", ["WPBR Diploma A", "VCA Certificaat"], 5,
     "Objectbeveiliging voor premium kantoorcomplex. Receptie, toegangscontrole en "
     "bezoekersregistratie. Representatieve uitstraling essentieel."),
    ("FAC-OBJ-003", "Ziekenhuis Nachtbeveiliging", "Facilicom Security", "Utrecht Centrum, 3584CX",
     24.75, 6.2, 4.3, 8, 12, "Objectbeveiliging", ["WPBR Diploma A", "BHV Certificaat", "EHBO Diploma"], 1,
     "Nachtbeveiliging in academisch ziekenhuis van 20:00 tot 08:00 uur. Patrouilleren, "
     "toegangscontrole en assistentie bij noodsituaties."),
    ("SEC-OBJ-004", "Datacenter Beveiliging Schiphol", "SecurePro Brabant", "Schiphol, 1118CP",
     28.50, 8.7, 4.7, 6, 8, "Objectbeveiliging", ["WPBR Diploma B", "VCA Certificaat"], 3,
     "Beveiliging van kritiek datacenter. Strikte toegangsprotocollen, biometrische systemen "
     "en 24/7 monitoring."),
    ("G4S-EVE-005", "Festival Beveiliging Lowlands", "G4S Nederland", "Biddinghuizen, 8256RJ",
     29.00, 12.4, 4.6, 45, 12, "Evenementbeveiliging", ["WPBR Diploma A", "BHV Certificaat", "VCA Certificaat"], 14,
     "Evenementbeveiliging tijdens 3-daags muziekfestival. Crowd control, toegangscontrole en "
     "podiumbeveiliging. Weekend premie van 25% inbegrepen."),
    ("EVE-SEC-006", "Concerthal Ziggo Dome Security", "Rotterdam Event Security", "Amsterdam Zuidoost, 1101EB",
     27.50, 7.8, 4.8, 22, 6, "Evenementbeveiliging", ["WPBR Diploma A", "BHV Certificaat"], 8,
     "Crowd control en VIP beveiliging tijdens internationale concerten. Avond- en weekendwerk."),
    ("RET-SUP-008", "Supermarkt Diefstalpreventie", "VeiligPro Utrecht", "Utrecht Overvecht, 3526GA",
     18.50, 3.2, 4.0, 15, 8, "Winkelbeveiliging", ["WPBR Diploma A"], 2,
     "Diefstalpreventie in drukke supermarkt tijdens piekuren. Observatie en discrete benadering "
     "van verdachte situaties."),
    ("AMS-POR-012", "Portier Uitgaansgebied Leidseplein", "Amsterdam Security Noord", "Amsterdam Centrum, 1017PN",
     23.00, 5.0, 4.1, 19, 7, "Portier", ["Portier Diploma", "BHV Certificaat"], 4,
     "Deurbeleid en toezicht bij horecagelegenheid in het weekend. Rustige, de-escalerende "
     "houding vereist."),
]


class StaticJobSource(DataSource):
    """DataSource that yields the built-in job listings; start dates are relative to now."""

    name = "static"

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now

    def fetch_jobs(self, **kwargs: Any) -> Iterator[dict[str, Any]]:
        now = self._now or datetime.now()
        for (job_id, title, company, raw_location, rate, distance, rating, applicants,
             hours, job_type, certificates, start_days, description) in _SEED_JOBS:
            location, postal_code = parse_location(raw_location)
            start = (now + timedelta(days=start_days)).replace(minute=0, second=0, microsecond=0)
            yield {
                "job_id": job_id,
                "job_title": title,
                "company_name": company,
                "location": location,
                "postal_code": postal_code,
                "hourly_rate": rate,
                "distance": distance,
                "company_rating": rating,
                "applicant_count": applicants,
                "duration": hours,
                "job_type": job_type,
                "description": description,
                "required_certificates": list(certificates),
                "start_date": start,
                "end_date": start + timedelta(hours=hours),
            }
