import collections

# --- View Defaults ---

ROW_HEIGHT = 40
DAY_WIDTH = 32
TASK_LIST_WIDTH = 400
VERTICAL_PADDING = 8

# Asymmetric padding around the task dates: a week of history, a month of runway.
VIEW_PADDING_BEFORE_DAYS = 7
VIEW_PADDING_AFTER_DAYS = 30
EMPTY_VIEW_PADDING_DAYS = 30

# Accepted input formats, tried in order.
DATE_FORMATS = ("%Y-%m-%d", "%d-%m-%Y")

# --- Status & Dependency Settings ---

STATUSES = ("completed", "in-progress", "delayed", "not-started")

status_aliases = {
    "": "not-started",
    "todo": "not-started",
    "to-do": "not-started",
    "pending": "not-started",
    "done": "completed",
    "complete": "completed",
    "started": "in-progress",
    "active": "in-progress",
    "late": "delayed",
    "on-hold": "delayed",
    "overdue": "delayed",
}

status_colors = collections.OrderedDict([
    ('completed', '#22c55e'),
    ('in-progress', '#3b82f6'),
    ('delayed', '#ef4444'),
    ('not-started', '#94a3b8'),
])

DEPENDENCY_TYPES = ("FS", "SS", "FF", "SF")

dependency_colors = {
    'FS': '#3b82f6',
    'SS': '#10b981',
    'FF': '#f59e0b',
    'SF': '#ef4444',
}
DEPENDENCY_ALPHA = 0.8
# Connectors attach this far inside the bar ends.
DEPENDENCY_INSET = 4

task_palette = [
    '#3B82F6',  # Blue
    '#06B6D4',  # Cyan
    '#10B981',  # Emerald
    '#8B5CF6',  # Violet
    '#F59E0B',  # Amber
    '#EF4444',  # Red
    '#84CC16',  # Lime
    '#EC4899',  # Pink
    '#6366F1',  # Indigo
    '#14B8A6',  # Teal
]

# --- Default Data ---

# Sample WBS loaded by "Load Template". Dates are offsets in days from the
# project start so the template is usable on any day.
default_tasks_data = [
    {"id": "preliminaries", "name": "Preliminaries", "parent_id": None,
     "start_offset": 0, "duration_days": 14, "status": "completed", "progress": 100},
    {"id": "permits", "name": "Permits & Approvals", "parent_id": "preliminaries",
     "start_offset": 0, "duration_days": 10, "status": "completed", "progress": 100},
    {"id": "site-setup", "name": "Site Setup", "parent_id": "preliminaries",
     "start_offset": 10, "duration_days": 4, "status": "completed", "progress": 100,
     "predecessors": "permits:FS"},
    {"id": "site-work", "name": "Site Work", "parent_id": None,
     "start_offset": 14, "duration_days": 30, "status": "in-progress", "progress": 40},
    {"id": "excavation", "name": "Excavation", "parent_id": "site-work",
     "start_offset": 14, "duration_days": 8, "status": "completed", "progress": 100,
     "predecessors": "site-setup:FS"},
    {"id": "footings", "name": "Footings", "parent_id": "site-work",
     "start_offset": 22, "duration_days": 10, "status": "in-progress", "progress": 50,
     "predecessors": "excavation:FS"},
    {"id": "slab", "name": "Slab Pour", "parent_id": "site-work",
     "start_offset": 32, "duration_days": 12, "status": "delayed", "progress": 10,
     "predecessors": "footings:FS+1"},
    {"id": "structure", "name": "Structure", "parent_id": None,
     "start_offset": 44, "duration_days": 40, "status": "not-started", "progress": 0},
    {"id": "framing", "name": "Framing", "parent_id": "structure",
     "start_offset": 44, "duration_days": 20, "status": "not-started", "progress": 0,
     "predecessors": "slab:FS"},
    {"id": "roofing", "name": "Roofing", "parent_id": "structure",
     "start_offset": 64, "duration_days": 20, "status": "not-started", "progress": 0,
     "predecessors": "framing:FS"},
    {"id": "handover", "name": "Handover", "parent_id": None,
     "start_offset": 84, "duration_days": 1, "status": "not-started", "progress": 0,
     "predecessors": "roofing:FS"},
]
