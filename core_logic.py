from datetime import date, datetime, timedelta
import calendar
import logging
import math

from config import (
    ROW_HEIGHT, DAY_WIDTH, TASK_LIST_WIDTH, VERTICAL_PADDING,
    VIEW_PADDING_BEFORE_DAYS, VIEW_PADDING_AFTER_DAYS, EMPTY_VIEW_PADDING_DAYS,
    task_palette,
)

logger = logging.getLogger(__name__)

# --- Date Helpers ---

def as_date(value):
    """Truncates datetimes (and pandas Timestamps) to a plain date."""
    if isinstance(value, datetime):
        return value.date()
    return value

def days_between(start, end):
    return (as_date(end) - as_date(start)).days

def start_of_month(d):
    return as_date(d).replace(day=1)

def end_of_month(d):
    d = as_date(d)
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])

def add_work_days(start_date, duration_days):
    start_date = as_date(start_date)
    days_to_add = math.ceil(duration_days) - 1
    if duration_days > 0 and days_to_add < 0:
        days_to_add = 0
    temp_date = start_date
    while days_to_add > 0:
        temp_date += timedelta(days=1)
        if temp_date.weekday() < 5:
            days_to_add -= 1
    return temp_date

def count_work_days(start_date, end_date):
    """Counts the number of work days (Mon-Fri) between two dates, inclusive."""
    start_date, end_date = as_date(start_date), as_date(end_date)
    if start_date > end_date:
        return 0

    work_days = 0
    current_date = start_date
    while current_date <= end_date:
        if current_date.weekday() < 5:
            work_days += 1
        current_date += timedelta(days=1)
    return work_days

def calculate_duration(start_date, end_date):
    return max(1, count_work_days(start_date, end_date))

# --- Hierarchy ---

def _break_cycles(parents, order):
    """
    Returns a copy of the id -> parent id map in which every parent chain ends
    at a root. The first task of each cycle (in input order) loses its parent.
    """
    parents = dict(parents)
    position = {task_id: i for i, task_id in enumerate(order)}
    settled = set()
    for task_id in order:
        path = []
        on_path = set()
        current = task_id
        while current is not None and current not in settled:
            if current in on_path:
                cycle = path[path.index(current):]
                root_id = min(cycle, key=position.get)
                logger.warning("Task '%s' is part of a parent cycle; treating it as a root.", root_id)
                parents[root_id] = None
                break
            path.append(current)
            on_path.add(current)
            current = parents.get(current)
        settled.update(path)
    return parents

def build_hierarchy(tasks):
    nodes = {}
    order = []
    for task in tasks:
        if task['id'] in nodes:
            logger.warning("Duplicate task id '%s' ignored.", task['id'])
            continue
        node = dict(task)
        node['children'] = []
        nodes[task['id']] = node
        order.append(task['id'])

    parents = {}
    for task_id in order:
        parent_id = nodes[task_id].get('parent_id')
        parents[task_id] = parent_id if parent_id in nodes else None
    parents = _break_cycles(parents, order)

    roots = []
    for task_id in order:
        parent_id = parents[task_id]
        if parent_id is not None:
            nodes[parent_id]['children'].append(nodes[task_id])
        else:
            roots.append(nodes[task_id])
    return roots

def iter_tree(tree):
    """Yields (node, level) pairs in depth-first pre-order."""
    stack = [(node, 0) for node in reversed(tree)]
    while stack:
        node, level = stack.pop()
        yield node, level
        for child in reversed(node.get('children', [])):
            stack.append((child, level + 1))

def flatten_visible(tree, expanded):
    rows = []
    stack = [(node, 0) for node in reversed(tree)]
    while stack:
        node, level = stack.pop()
        children = node.get('children', [])
        row = {key: value for key, value in node.items() if key != 'children'}
        row['level'] = level
        row['has_children'] = bool(children)
        rows.append(row)
        if node['id'] in expanded:
            for child in reversed(children):
                stack.append((child, level + 1))
    return rows

def find_task(tree, task_id):
    for node, _ in iter_tree(tree):
        if node['id'] == task_id:
            return node
    return None

# --- Expanded State ---

def initial_expanded_state(tree):
    return {node['id'] for node in tree}

def toggle_expanded(expanded, task_id):
    new_expanded = set(expanded)
    if task_id in new_expanded:
        new_expanded.discard(task_id)
    else:
        new_expanded.add(task_id)
    return new_expanded

def expand_all(tree):
    return {node['id'] for node, _ in iter_tree(tree) if node.get('children')}

# --- View Settings & Positions ---

def derive_view_settings(tasks, today=None, row_height=ROW_HEIGHT, day_width=DAY_WIDTH,
                         task_list_width=TASK_LIST_WIDTH, vertical_padding=VERTICAL_PADDING):
    if tasks:
        min_date = min(as_date(t['start_date']) for t in tasks)
        max_date = max(as_date(t['end_date']) for t in tasks)
        view_start = start_of_month(min_date - timedelta(days=VIEW_PADDING_BEFORE_DAYS))
        view_end = end_of_month(max_date + timedelta(days=VIEW_PADDING_AFTER_DAYS))
    else:
        today = as_date(today or date.today())
        view_start = start_of_month(today - timedelta(days=EMPTY_VIEW_PADDING_DAYS))
        view_end = end_of_month(today + timedelta(days=EMPTY_VIEW_PADDING_DAYS))

    return {
        'row_height': row_height,
        'day_width': day_width,
        'task_list_width': task_list_width,
        'vertical_padding': vertical_padding,
        'view_start': view_start,
        'view_end': view_end,
    }

def calculate_task_position(task, view_settings, row_index):
    day_width = view_settings['day_width']
    row_height = view_settings['row_height']
    padding = view_settings.get('vertical_padding', VERTICAL_PADDING)

    left = max(0, days_between(view_settings['view_start'], task['start_date']) * day_width)
    width = max(day_width, (days_between(task['start_date'], task['end_date']) + 1) * day_width)
    return {
        'left': left,
        'width': width,
        'top': row_index * row_height + padding,
        'height': row_height - 2 * padding,
    }

def layout_rows(rows, view_settings):
    laid_out = []
    for i, row in enumerate(rows):
        row = dict(row)
        row['position'] = calculate_task_position(row, view_settings, i)
        laid_out.append(row)
    return laid_out

def build_gantt_rows(tasks, expanded, view_settings=None):
    """Runs the full pipeline: hierarchy, visible rows, then bar positions."""
    if view_settings is None:
        view_settings = derive_view_settings(tasks)
    tree = build_hierarchy(tasks)
    return layout_rows(flatten_visible(tree, expanded), view_settings)

# --- Timeline ---

def timeline_days(view_settings):
    start = view_settings['view_start']
    total = days_between(start, view_settings['view_end']) + 1
    return [start + timedelta(days=i) for i in range(max(0, total))]

def chart_width(view_settings):
    return len(timeline_days(view_settings)) * view_settings['day_width']

def generate_timeline_headers(view_settings):
    day_width = view_settings['day_width']
    days = timeline_days(view_settings)
    months = []
    for i, d in enumerate(days):
        if not months or (d.year, d.month) != (months[-1]['start'].year, months[-1]['start'].month):
            months.append({'label': d.strftime('%b %Y'), 'start': d, 'days': 0, 'left': i * day_width})
        months[-1]['days'] += 1
    for month in months:
        month['width'] = month['days'] * day_width
    return {'months': months, 'days': days}

# --- WBS ---

def assign_wbs_codes(tree):
    codes = {}
    stack = [(node, f"{i + 1}.0") for i, node in reversed(list(enumerate(tree)))]
    while stack:
        node, code = stack.pop()
        codes[node['id']] = code
        # Phases are numbered "1.0"; their children drop the trailing ".0".
        prefix = code[:-2] if code.endswith('.0') else code
        children = node.get('children', [])
        for i in reversed(range(len(children))):
            stack.append((children[i], f"{prefix}.{i + 1}"))
    return codes

def task_color(task_id):
    h = 0
    for ch in str(task_id):
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return task_palette[abs(h) % len(task_palette)]
