from datetime import date, datetime, timedelta
import json
import logging
import re

import pandas as pd

from config import DATE_FORMATS, DEPENDENCY_TYPES, STATUSES, status_aliases, default_tasks_data
from core_logic import add_work_days

logger = logging.getLogger(__name__)

# (label shown to the user, task key, required, header names matched exactly)
FIELD_DEFINITIONS = [
    ("Task ID", "id", False, ("task id", "id", "wbs id")),
    ("Task Name", "name", True, ("task name", "name", "task")),
    ("Parent ID", "parent_id", False, ("parent id", "parent")),
    ("Start Date", "start_date", False, ("start date", "start")),
    ("End Date", "end_date", False, ("end date", "end", "finish")),
    ("Duration", "duration", False, ("duration", "work days")),
    ("Status", "status", False, ("status",)),
    ("Progress", "progress", False, ("progress", "% complete", "percent complete")),
    ("Predecessors", "predecessors", False, ("predecessors", "dependencies", "depends on")),
]

_LINK_SPEC = re.compile(r"^(FS|SS|FF|SF)?\s*([+-]\s*\d+)?$", re.IGNORECASE)

# --- Field Parsing ---

def _is_missing(value):
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False

def _clean_id(value):
    if _is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()

def parse_date(value, task_label="task"):
    if _is_missing(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
    raise ValueError(f"Invalid date format for '{task_label}'. Please use YYYY-MM-DD or DD-MM-YYYY.")

def normalize_status(value, task_label="task"):
    if _is_missing(value):
        return "not-started"
    key = re.sub(r"[\s_]+", "-", str(value).strip().lower())
    key = status_aliases.get(key, key)
    if key not in STATUSES:
        raise ValueError(f"Unknown status '{value}' for '{task_label}'. Expected one of: {', '.join(STATUSES)}.")
    return key

def _parse_number(value, field, task_label):
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {field} '{value}' for '{task_label}'.")

def _parse_link(item, task_label):
    if isinstance(item, dict):
        predecessor_id = _clean_id(item.get('predecessor_id', item.get('id')))
        dependency_type = str(item.get('type') or 'FS').upper()
        lag = item.get('lag') or 0
    else:
        predecessor_id, _, spec = str(item).partition(':')
        predecessor_id = predecessor_id.strip()
        match = _LINK_SPEC.match(spec.strip())
        if not match:
            raise ValueError(f"Invalid predecessor '{item}' for '{task_label}'. Use e.g. 'A:FS+2'.")
        dependency_type = (match.group(1) or 'FS').upper()
        lag = int(match.group(2).replace(' ', '')) if match.group(2) else 0

    if not predecessor_id:
        raise ValueError(f"Predecessor without a task id for '{task_label}'.")
    if dependency_type not in DEPENDENCY_TYPES:
        raise ValueError(f"Unknown dependency type '{dependency_type}' for '{task_label}'.")
    return {'predecessor_id': predecessor_id, 'type': dependency_type, 'lag': int(lag)}

def parse_predecessors(value, task_label="task"):
    """Accepts a list of links or a string like "A, B:SS, C:FS+2"."""
    if isinstance(value, (list, tuple)):
        items = value
    elif _is_missing(value):
        return []
    else:
        items = [part for part in re.split(r"[,;]", str(value)) if part.strip()]
    return [_parse_link(item, task_label) for item in items]

def format_predecessors(links):
    parts = []
    for link in links:
        text = f"{link['predecessor_id']}:{link['type']}"
        if link.get('lag'):
            text += f"{link['lag']:+d}"
        parts.append(text)
    return ", ".join(parts)

# --- Task Normalization ---

def normalize_task(raw, index=None):
    """
    Turns a loosely typed task record into the planner's task dict. Missing
    ids fall back to the 1-based row number when an index is given.
    """
    task_id = _clean_id(raw.get('id'))
    if task_id is None:
        if index is None:
            raise ValueError("Task is missing an id.")
        task_id = str(index + 1)

    name = raw.get('name')
    label = task_id if _is_missing(name) else str(name).strip()

    start_date = parse_date(raw.get('start_date'), label)
    end_date = parse_date(raw.get('end_date'), label)
    if start_date is None and end_date is None:
        raise ValueError(f"Task '{label}' needs a start or end date.")
    if start_date is None:
        start_date = end_date
    if end_date is None:
        duration = raw.get('duration')
        if _is_missing(duration):
            end_date = start_date
        else:
            end_date = add_work_days(start_date, _parse_number(duration, "duration", label))
    if end_date < start_date:
        logger.warning("Task '%s' ends before it starts; using a single day.", label)
        end_date = start_date

    status = normalize_status(raw.get('status'), label)

    progress = raw.get('progress')
    if _is_missing(progress):
        progress = 100 if status == "completed" else 0
    else:
        progress = int(min(100, max(0, _parse_number(progress, "progress", label))))

    return {
        'id': task_id,
        'name': label,
        'parent_id': _clean_id(raw.get('parent_id')),
        'start_date': start_date,
        'end_date': end_date,
        'status': status,
        'progress': progress,
        'predecessors': parse_predecessors(raw.get('predecessors'), label),
        'level': 0,
    }

def normalize_tasks(raw_tasks):
    tasks = []
    seen = set()
    for i, raw in enumerate(raw_tasks):
        task = normalize_task(raw, i)
        if task['id'] in seen:
            raise ValueError(f"Duplicate task id '{task['id']}'.")
        seen.add(task['id'])
        tasks.append(task)
    return tasks

def build_template_tasks(project_start, template=None):
    """Materializes the offset-based template around a project start date."""
    tasks = []
    for entry in template if template is not None else default_tasks_data:
        start = project_start + timedelta(days=entry.get('start_offset', 0))
        raw = dict(entry)
        raw['start_date'] = start
        raw['end_date'] = start + timedelta(days=max(1, entry.get('duration_days', 1)) - 1)
        tasks.append(raw)
    return normalize_tasks(tasks)

# --- Tabular Import / Export ---

def guess_column_mapping(columns):
    """Maps task keys to file columns: exact header names first, then partial matches."""
    def norm(text):
        return str(text).lower().replace("_", " ").replace("-", " ").strip()

    mapping = {}
    used = set()
    for _, key, _, names in FIELD_DEFINITIONS:
        for col in columns:
            if col not in used and norm(col) in names:
                mapping[key] = col
                used.add(col)
                break

    for label, key, _, _ in FIELD_DEFINITIONS:
        if key in mapping:
            continue
        field_lower = label.lower()
        for col in columns:
            col_lower = norm(col)
            if col not in used and col_lower and (field_lower in col_lower or col_lower in field_lower):
                mapping[key] = col
                used.add(col)
                break
    return mapping

def read_table(filepath):
    if filepath.endswith('.csv'):
        return pd.read_csv(filepath)
    if filepath.endswith('.xls') or filepath.endswith('.xlsx'):
        return pd.read_excel(filepath)
    raise ValueError("Unsupported file type. Please select a CSV or Excel file.")

def import_from_file(filepath, mapping=None):
    """
    Imports tasks from a CSV or Excel file. `mapping` maps task keys to column
    names and is guessed from the headers when omitted.
    """
    df = read_table(filepath)
    if mapping is None:
        mapping = guess_column_mapping(list(df.columns))

    if not mapping.get("name"):
        raise ValueError("You must map a column to 'Task Name'.")

    raw_tasks = []
    for index, row in df.iterrows():
        try:
            if _is_missing(row[mapping["name"]]):
                continue  # Skip rows where task name is empty
            raw = {key: row[column] for key, column in mapping.items()}
        except KeyError as e:
            raise ValueError(f"The column {e} selected in the mapping does not exist in the file.")
        if 'id' not in raw or _is_missing(raw['id']):
            raw['id'] = str(index + 1)
        raw_tasks.append(raw)

    tasks = normalize_tasks(raw_tasks)
    logger.info("Imported %d tasks from %s", len(tasks), filepath)
    return tasks

def tasks_to_frame(tasks):
    records = []
    for task in tasks:
        records.append({
            "Task ID": task['id'],
            "Task Name": task['name'],
            "Parent ID": task.get('parent_id') or "",
            "Start Date": task['start_date'].isoformat(),
            "End Date": task['end_date'].isoformat(),
            "Status": task['status'],
            "Progress": task.get('progress', 0),
            "Predecessors": format_predecessors(task.get('predecessors') or []),
        })
    return pd.DataFrame(records, columns=[label for label, key, _, _ in FIELD_DEFINITIONS if key != "duration"])

def export_to_file(filepath, tasks):
    df = tasks_to_frame(tasks)
    if filepath.endswith('.xls') or filepath.endswith('.xlsx'):
        df.to_excel(filepath, index=False)
    else:
        df.to_csv(filepath, index=False)

# --- Project Files ---

def save_project(filepath, project_name, tasks):
    tasks_to_save = []
    for task in tasks:
        tasks_to_save.append({
            "id": task['id'],
            "name": task['name'],
            "parent_id": task.get('parent_id'),
            "start_date": task['start_date'].isoformat(),
            "end_date": task['end_date'].isoformat(),
            "status": task['status'],
            "progress": task.get('progress', 0),
            "predecessors": [dict(link) for link in task.get('predecessors') or []],
        })

    project_data = {
        "project_name": project_name,
        "tasks": tasks_to_save,
    }
    with open(filepath, 'w') as f:
        json.dump(project_data, f, indent=4)

def load_project(filepath):
    with open(filepath, 'r') as f:
        project_data = json.load(f)
    return project_data.get("project_name", "Untitled Project"), normalize_tasks(project_data.get("tasks", []))
