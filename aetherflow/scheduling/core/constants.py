"""
Constants and keyword tables shared across the scheduling engine.
"""

# Item type tags
TASK = "task"
BREAK = "break"
MEAL = "meal"
TIME_OFF = "time-off"
CALENDAR_EVENT = "calendar-event"

OCCUPYING_TYPES = (TASK, BREAK, MEAL, TIME_OFF, CALENDAR_EVENT)

# Energy model
MAX_ENERGY = 100
LOW_ENERGY_THRESHOLD = 20
MEAL_ENERGY_GAIN = -10
MIN_ENERGY_COST = 5
ENERGY_PER_CHUNK = 5
MINUTES_PER_CHUNK = 15
CRITICAL_MULTIPLIER = 1.5
BACKBURNER_MULTIPLIER = 0.75
DEFAULT_TASK_DURATION_FOR_ENERGY_CALCULATION = 30
REGEN_POD_RATE_PER_MINUTE = 1

# Leveling
XP_PER_LEVEL = 100
XP_PER_ENERGY_POINT = 2

# Defaults used by parsers and synthesized items
DEFAULT_BREAK_MINUTES = 15
DEFAULT_EMOJI = "📋"
DEFAULT_HUE = 220
DEFAULT_SINK_ENVIRONMENT = "laptop"
REGEN_POD_ID = "regen-pod-active"
REGEN_POD_NAME = "Energy Regen Pod"
REGEN_POD_EMOJI = "🔋"

MEAL_KEYWORDS = [
    "cook", "meal prep", "groceries", "food", "🍔", "lunch",
    "dinner", "breakfast", "snack", "eat", "coffee break",
]

# (name, emoji) for the fixed meal slots configured on a profile
MEAL_SLOTS = [
    ("Breakfast", "🥞"),
    ("Lunch", "🥗"),
    ("Dinner", "🍽️"),
]

# Item type rules, first match wins. Calendar imports are resolved before this table.
TYPE_RULES = [
    (r"\btime off\b", TIME_OFF),
    (r"\bbreak\b", BREAK),
]

# Emoji lookup, first match wins. Multi-word and more specific keywords come first.
EMOJI_TABLE = [
    ("time off", "🌴"),
    ("coffee break", "☕️"),
    ("meal prep", "🍲"),
    ("wake up", "⏰"),
    ("fold laundry", "🧺"),
    ("put away", "📦"),
    ("send quote", "🧾"),
    ("voice notes", "🎙️"),
    ("job notes", "📝"),
    ("write up", "✍️"),
    ("catch up", "🤝"),
    ("self-care", "🛀"),
    ("breakfast", "🥞"),
    ("lunch", "🥗"),
    ("dinner", "🍽️"),
    ("groceries", "🛒"),
    ("snack", "🍎"),
    ("cook", "🍳"),
    ("food", "🍔"),
    ("gym", "🏋️"),
    ("workout", "🏋️"),
    ("exercise", "🏋️"),
    ("fitness", "💪"),
    ("run", "🏃"),
    ("email", "📧"),
    ("messages", "💬"),
    ("message", "💬"),
    ("calls", "📞"),
    ("call", "📞"),
    ("phone", "📱"),
    ("admin", "⚙️"),
    ("paperwork", "📄"),
    ("meeting", "💼"),
    ("standup", "🤝"),
    ("sync", "🤝"),
    ("report", "📝"),
    ("project", "📊"),
    ("coding", "💻"),
    ("code", "💻"),
    ("develop", "💻"),
    ("bug", "🐛"),
    ("fix", "🛠️"),
    ("design", "🎨"),
    ("writing", "✍️"),
    ("journal", "✍️"),
    ("draw", "✏️"),
    ("study", "📦"),
    ("reading", "📖"),
    ("course", "🎓"),
    ("lecture", "🧑‍🏫"),
    ("lesson", "🧑‍🏫"),
    ("learn", "🧠"),
    ("clean", "🧹"),
    ("broom", "🧹"),
    ("laundry", "🧺"),
    ("tidy", "🗄️"),
    ("organise", "🗄️"),
    ("organize", "🗄️"),
    ("brainstorm", "💡"),
    ("tutorial", "💡"),
    ("strategy", "📈"),
    ("review", "🔍"),
    ("plan", "🗓️"),
    ("gaming", "🎮"),
    ("movie", "🎬"),
    ("meditation", "🧘"),
    ("yoga", "🧘"),
    ("relax", "🧘"),
    ("nap", "😴"),
    ("rest", "🛌"),
    ("break", "☕️"),
    ("coffee", "☕️"),
    ("walk", "🚶"),
    ("stretch", "🤸"),
    ("piano", "🎹"),
    ("practise", "🎹"),
    ("music", "🎶"),
    ("practice", "🎼"),
    ("rehearsal", "🎭"),
    ("commute", "🚗"),
    ("drive", "🚗"),
    ("train", "🚆"),
    ("travel", "✈️"),
    ("shop", "🛍️"),
    ("bank", "🏦"),
    ("payment", "💸"),
    ("money", "💰"),
    ("errands", "🏃‍♀️"),
    ("friends", "🧑‍🤝‍🧑"),
    ("family", "👨‍👩‍👧‍👦"),
    ("doctor", "🩺"),
    ("medication", "💊"),
    ("recycling", "♻️"),
    ("eat", "🍎"),
    ("work", "💻"),
]

# Hue lookup used when sorting by emoji, first match wins.
EMOJI_HUE_TABLE = [
    ("time off", 100),
    ("coffee break", 30),
    ("meal prep", 35),
    ("wake up", 60),
    ("breakfast", 50),
    ("lunch", 45),
    ("dinner", 10),
    ("groceries", 180),
    ("snack", 350),
    ("cook", 30),
    ("food", 25),
    ("gym", 200),
    ("workout", 200),
    ("exercise", 200),
    ("run", 210),
    ("email", 240),
    ("message", 245),
    ("call", 250),
    ("phone", 255),
    ("admin", 270),
    ("meeting", 280),
    ("report", 230),
    ("project", 290),
    ("code", 210),
    ("bug", 90),
    ("fix", 40),
    ("design", 320),
    ("writing", 320),
    ("study", 150),
    ("reading", 260),
    ("learn", 270),
    ("clean", 120),
    ("laundry", 130),
    ("organize", 140),
    ("brainstorm", 60),
    ("review", 80),
    ("plan", 220),
    ("gaming", 0),
    ("meditation", 160),
    ("yoga", 160),
    ("relax", 160),
    ("nap", 20),
    ("break", 40),
    ("coffee", 30),
    ("walk", 100),
    ("stretch", 110),
    ("piano", 270),
    ("music", 270),
    ("practice", 270),
    ("commute", 10),
    ("travel", 200),
    ("shop", 180),
    ("bank", 220),
    ("friends", 300),
    ("family", 300),
    ("eat", 35),
    ("work", 210),
]

# (upper bound in minutes, description); anything longer is an extended break
BREAK_DESCRIPTIONS = [
    (5, "Quick Stretch"),
    (15, "Coffee Break"),
    (30, "Mindful Pause"),
]
EXTENDED_BREAK_DESCRIPTION = "Extended Break"

MIDNIGHT_ROLLOVER_MESSAGE = "Your schedule extends past midnight into {weekday}."

# Auto-balance sort modes
SORT_TIME_EARLIEST_TO_LATEST = "TIME_EARLIEST_TO_LATEST"
SORT_TIME_LATEST_TO_EARLIEST = "TIME_LATEST_TO_EARLIEST"
SORT_PRIORITY_HIGH_TO_LOW = "PRIORITY_HIGH_TO_LOW"
SORT_PRIORITY_LOW_TO_HIGH = "PRIORITY_LOW_TO_HIGH"
SORT_NAME_ASC = "NAME_ASC"
SORT_NAME_DESC = "NAME_DESC"
SORT_EMOJI = "EMOJI"

SOURCE_ALL_FLEXIBLE = "all-flexible"
SOURCE_SINK_ONLY = "sink-only"
