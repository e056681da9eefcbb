"""Global constants for the dinewithfriends application."""

import datetime

# Collection names
USERS_COLLECTION = "users"
SQUADS_COLLECTION = "squads"
MEALS_COLLECTION = "meals"
PINGS_COLLECTION = "pings"
MEAL_BLOCKS_COLLECTION = "meal_blocks"

# Persistence defaults
DEFAULT_PERSISTENCE_TIMEOUT = 10.0
DEFAULT_TRANSACTION_MAX_ATTEMPTS = 3
FIRESTORE_IN_QUERY_LIMIT = 30

# Participant and squad invite statuses
STATUS_INVITED = "invited"
STATUS_CONFIRMED = "confirmed"
STATUS_DECLINED = "declined"
INVITE_STATUSES = (STATUS_INVITED, STATUS_CONFIRMED, STATUS_DECLINED)

# Meal slots: every quarter hour from 07:30 to 22:00
MEAL_TIME_SLOTS = tuple(
    f"{minutes // 60:02d}:{minutes % 60:02d}"
    for minutes in range(7 * 60 + 30, 22 * 60 + 1, 15)
)
MEAL_TYPE_BREAKFAST = "breakfast"
MEAL_TYPE_LUNCH = "lunch"
MEAL_TYPE_DINNER = "dinner"
BREAKFAST_START_HOUR = 5
LUNCH_START_HOUR = 11
DINNER_START_HOUR = 16
OPEN_MEAL_WINDOW = datetime.timedelta(days=7)

# Pings
PING_STATUS_ACTIVE = "active"
PING_STATUS_CANCELLED = "cancelled"
PING_ACCEPT = "accept"
PING_DECLINE = "decline"
PING_DISMISS = "dismiss"
PING_DEFAULT_MESSAGE = "Let's grab a meal!"
PING_DEFAULT_TTL = datetime.timedelta(minutes=30)

# Locations
LOCATION_OFFLINE = "ghost"
CAMPUS_PLACES = {
    "foco": "Class of 1953 Commons (FOCO)",
    "collis": "Collis Center",
    "hop": "Hopkins Center (HOP)",
    "fern": "Fern Coffee & Tea",
    "novack": "Novack Cafe",
    "campus": "Campus",
}
LOCATION_TTL = datetime.timedelta(minutes=90)
