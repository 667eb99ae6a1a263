"""
Demo data for local development (``flask seed-demo``).

Four teams, a manager, four technicians, two requesters, six assets and a
handful of requests spread over every stage. Rows are matched on their unique
keys (team name, user email, serial number, request subject per asset) so the
command can be re-run without duplicating anything.
"""

import logging
from datetime import date, timedelta

from werkzeug.security import generate_password_hash

from gearguard.models import utcnow
from gearguard.models.equipment import Equipment
from gearguard.models.maintenance import (
    STAGE_IN_PROGRESS,
    STAGE_NEW,
    STAGE_REPAIRED,
    TYPE_CORRECTIVE,
    TYPE_PREVENTIVE,
    MaintenanceRequest,
    RequestActivity,
)
from gearguard.models.team import MaintenanceTeam
from gearguard.models.user import ROLE_MANAGER, ROLE_TECHNICIAN, ROLE_USER, User

logger = logging.getLogger(__name__)

# Hashed into password_hash only; this service authenticates by JWT and never checks it.
DEMO_PASSWORD = "password123"

DEMO_TEAMS = ("Mechanics", "Electricians", "IT Support", "HVAC Specialists")

# (email, name, role, team)
DEMO_USERS = (
    ("manager@gearguard.com", "Sarah Johnson", ROLE_MANAGER, None),
    ("mike@gearguard.com", "Mike Chen", ROLE_TECHNICIAN, "Mechanics"),
    ("emma@gearguard.com", "Emma Wilson", ROLE_TECHNICIAN, "Electricians"),
    ("john@gearguard.com", "John Smith", ROLE_TECHNICIAN, "IT Support"),
    ("alex@gearguard.com", "Alex Rodriguez", ROLE_TECHNICIAN, "HVAC Specialists"),
    ("user@gearguard.com", "Bob Anderson", ROLE_USER, None),
    ("lisa@gearguard.com", "Lisa Park", ROLE_USER, None),
)

# (name, serial, department, employee, purchased, warranty_end, location, team)
DEMO_EQUIPMENT = (
    ("CNC Milling Machine", "CNC-2024-001", "Manufacturing", "Tom Hardy",
     date(2023, 3, 15), date(2026, 3, 15), "Building A - Floor 1", "Mechanics"),
    ("Industrial Generator", "GEN-2024-002", "Power Systems", "Jane Doe",
     date(2022, 8, 20), date(2025, 8, 20), "Building B - Basement", "Electricians"),
    ("Dell PowerEdge R750", "SRV-2024-003", "IT Infrastructure", None,
     date(2024, 1, 10), date(2027, 1, 10), "Server Room - Rack 5", "IT Support"),
    ("Carrier HVAC Unit", "HVAC-2024-004", "Facilities", None,
     date(2021, 5, 1), date(2024, 5, 1), "Building A - Rooftop", "HVAC Specialists"),
    ("Hydraulic Press", "HYD-2024-005", "Manufacturing", "Mark Wilson",
     date(2020, 11, 30), date(2023, 11, 30), "Building A - Floor 2", "Mechanics"),
    ("Forklift Electric", "FLT-2024-006", "Warehouse", "Carlos Martinez",
     date(2023, 7, 15), date(2026, 7, 15), "Warehouse - Zone B", "Mechanics"),
)


def _demo_requests(today: date):
    """Request rows keyed by serial/email; dates are relative to ``today``."""
    return (
        dict(subject="CNC Machine Making Strange Noise",
             description="The CNC machine has been making a grinding noise during operation. "
                         "Needs immediate inspection.",
             request_type=TYPE_CORRECTIVE, priority=3, stage=STAGE_NEW,
             serial="CNC-2024-001", created_by="user@gearguard.com", age_days=3),
        dict(subject="Generator Voltage Fluctuation",
             description="The generator output voltage is fluctuating. Technician is investigating.",
             request_type=TYPE_CORRECTIVE, priority=4, stage=STAGE_IN_PROGRESS,
             serial="GEN-2024-002", created_by="lisa@gearguard.com",
             technician="emma@gearguard.com"),
        dict(subject="Server Memory Error",
             description="Memory module replaced. Server restored to normal operation.",
             request_type=TYPE_CORRECTIVE, priority=4, stage=STAGE_REPAIRED, duration=2.5,
             serial="SRV-2024-003", created_by="manager@gearguard.com",
             technician="john@gearguard.com",
             notes="Replaced faulty RAM module in slot 3. Tested and verified system stability."),
        dict(subject="Quarterly HVAC Filter Replacement",
             description="Scheduled quarterly maintenance - replace filters and check refrigerant levels.",
             request_type=TYPE_PREVENTIVE, priority=2, stage=STAGE_NEW,
             scheduled_date=today + timedelta(days=7),
             serial="HVAC-2024-004", created_by="manager@gearguard.com"),
        dict(subject="Hydraulic Press Oil Change",
             description="Monthly oil change and hydraulic system inspection.",
             request_type=TYPE_PREVENTIVE, priority=2, stage=STAGE_NEW,
             scheduled_date=today + timedelta(days=1),
             serial="HYD-2024-005", created_by="manager@gearguard.com",
             technician="mike@gearguard.com"),
        dict(subject="Forklift Battery Not Charging",
             description="The forklift battery is not holding charge. May need battery replacement.",
             request_type=TYPE_CORRECTIVE, priority=3, stage=STAGE_NEW,
             serial="FLT-2024-006", created_by="user@gearguard.com"),
        dict(subject="Annual CNC Calibration",
             description="Annual calibration check for precision machining.",
             request_type=TYPE_PREVENTIVE, priority=2, stage=STAGE_IN_PROGRESS,
             scheduled_date=today - timedelta(days=1),
             serial="CNC-2024-001", created_by="manager@gearguard.com",
             technician="mike@gearguard.com"),
    )


def seed_demo_data(store, clock=utcnow) -> dict:
    """Insert missing demo rows. Returns the number created per entity kind."""
    now = clock()
    created = {"teams": 0, "users": 0, "equipment": 0, "requests": 0}

    with store.unit_of_work():
        teams = {}
        for name in DEMO_TEAMS:
            team = store.find_team_by_name(name)
            if team is None:
                team = store.add(MaintenanceTeam(name=name))
                created["teams"] += 1
            teams[name] = team
        store.flush()

        users = {}
        password_hash = generate_password_hash(DEMO_PASSWORD)
        for email, name, role, team_name in DEMO_USERS:
            user = store.find_user_by_email(email)
            if user is None:
                seed = name.split()[0]
                user = store.add(User(
                    email=email,
                    name=name,
                    password_hash=password_hash,
                    role=role,
                    team_id=teams[team_name].id if team_name else None,
                    avatar=f"https://api.dicebear.com/7.x/avataaars/svg?seed={seed}",
                ))
                created["users"] += 1
            users[email] = user
        store.flush()

        assets = {}
        for name, serial, dept, employee, purchased, warranty, location, team_name in DEMO_EQUIPMENT:
            equipment = store.find_equipment_by_serial(serial)
            if equipment is None:
                equipment = store.add(Equipment(
                    name=name,
                    serial_number=serial,
                    department=dept,
                    assigned_employee=employee,
                    purchase_date=purchased,
                    warranty_end_date=warranty,
                    location=location,
                    team_id=teams[team_name].id,
                ))
                created["equipment"] += 1
            assets[serial] = equipment
        store.flush()

        for row in _demo_requests(now.date()):
            equipment = assets[row["serial"]]
            if store.find_request(row["subject"], equipment.id) is not None:
                continue
            creator = users[row["created_by"]]
            technician = users.get(row.get("technician"))
            created_at = now - timedelta(days=row.get("age_days", 0))
            req = store.add(MaintenanceRequest(
                subject=row["subject"],
                description=row["description"],
                request_type=row["request_type"],
                priority=row["priority"],
                stage=row["stage"],
                equipment_id=equipment.id,
                team_id=equipment.team_id,
                created_by_id=creator.id,
                technician_id=technician.id if technician else None,
                scheduled_date=row.get("scheduled_date"),
                duration=row.get("duration"),
                notes=row.get("notes"),
                created_at=created_at,
            ))
            req.activities.append(RequestActivity(
                actor_id=creator.id,
                actor_name="seed",
                action="request.create",
                message=f"{row['request_type'].title()} request created",
                created_at=created_at,
            ))
            created["requests"] += 1

    logger.info("Demo data seeded: %s", created)
    return created
