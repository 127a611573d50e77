import tkinter as tk
from tkinter import ttk, filedialog, messagebox
from datetime import date
import logging

from matplotlib.figure import Figure
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg

# Local imports
from core_logic import (
    assign_wbs_codes, build_hierarchy, derive_view_settings, expand_all, find_task,
    flatten_visible, initial_expanded_state, layout_rows, toggle_expanded,
)
from dependencies import auto_schedule_task, project_stats, validate_task_schedule
from dialogs import ColumnMappingDialog, EditTaskDialog
from importers import (
    build_template_tasks, export_to_file, import_from_file, load_project, normalize_task,
    read_table, save_project,
)
from renderer import draw_gantt_chart

logger = logging.getLogger(__name__)


class GanttChartApp(tk.Tk):
    def __init__(self):
        super().__init__()
        self.title("WBS Gantt Planner")
        self.geometry("1800x800")

        # --- App State ---
        self.tasks = []
        self.tree = []
        self.expanded = set()
        self.wbs_codes = {}
        self.view_settings = derive_view_settings([])
        self.rows = []

        # --- UI State ---
        self._is_updating = False
        self.controls_visible = True
        self.project_name_var = tk.StringVar(value="New Project")
        self.show_dependencies_var = tk.BooleanVar(value=True)
        self.chart_items = []
        self.current_filepath = None

        # --- Menu Bar ---
        self.create_menu()

        # --- Main Layout ---
        self.main_frame = ttk.Frame(self)
        self.main_frame.pack(side=tk.TOP, fill=tk.BOTH, expand=True)

        self.control_frame = ttk.Frame(self.main_frame, width=self.view_settings['task_list_width'], padding="10")
        self.control_frame.pack(side=tk.LEFT, fill=tk.Y, expand=False)

        # Separator and toggle button
        self.separator_frame = ttk.Frame(self.main_frame, width=20)
        self.separator_frame.pack(side=tk.LEFT, fill=tk.Y)
        self.toggle_button = ttk.Button(self.separator_frame, text="<", command=self.toggle_controls, width=2)
        self.toggle_button.pack(pady=20)

        self.chart_frame = ttk.Frame(self.main_frame)
        self.chart_frame.pack(side=tk.RIGHT, fill=tk.BOTH, expand=True)

        # --- Initialization ---
        self.setup_chart_canvas()
        self.build_controls()
        self.new_blank_project()
        self.canvas.mpl_connect('button_press_event', self.on_press)

    def on_press(self, event):
        if event.inaxes != self.ax:
            return

        for item in reversed(self.chart_items):
            contains, _ = item['patch'].contains(event)
            if not contains:
                continue
            if event.dblclick:
                self.edit_task(task_id=item['id'])
            elif item['data'].get('has_children'):
                self.expanded = toggle_expanded(self.expanded, item['id'])
                self.task_tree.item(item['id'], open=item['id'] in self.expanded)
                self.redraw()
            return

    def toggle_controls(self):
        if self.controls_visible:
            self.control_frame.pack_forget()
            self.toggle_button.config(text=">")
            self.controls_visible = False
        else:
            self.control_frame.pack(side=tk.LEFT, fill=tk.Y, expand=False, before=self.separator_frame)
            self.toggle_button.config(text="<")
            self.controls_visible = True

    def create_menu(self):
        menubar = tk.Menu(self)
        self.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="File", menu=file_menu)

        file_menu.add_command(label="New Blank Project", command=self.new_blank_project)
        file_menu.add_command(label="Load Template", command=self.load_template)
        file_menu.add_separator()
        file_menu.add_command(label="Open Project...", command=self.open_project)
        file_menu.add_command(label="Save Project As...", command=self.save_project_as)
        file_menu.add_separator()
        file_menu.add_command(label="Import Tasks...", command=self.import_tasks)
        file_menu.add_command(label="Export Tasks...", command=self.export_tasks)
        file_menu.add_command(label="Export Chart...", command=self.export_chart)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.quit)

        view_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="View", menu=view_menu)
        view_menu.add_command(label="Expand All", command=self.expand_all)
        view_menu.add_command(label="Collapse All", command=self.collapse_all)
        view_menu.add_separator()
        view_menu.add_command(label="Project Statistics...", command=self.show_stats)

    def setup_chart_canvas(self):
        self.figure = Figure(figsize=(18, 4), dpi=100)
        self.ax = self.figure.add_subplot(111)
        self.canvas = FigureCanvasTkAgg(self.figure, self.chart_frame)
        self.canvas.get_tk_widget().pack(side=tk.TOP, fill=tk.BOTH, expand=True)

    def on_ui_change(self, event=None):
        if self._is_updating: return
        self._is_updating = True
        try:
            self.update_window_title()
            self.redraw()
        finally:
            self._is_updating = False

    def update_window_title(self):
        project_name = self.project_name_var.get()
        if self.current_filepath:
            self.title(f"{project_name} - {self.current_filepath}")
        else:
            self.title(f"{project_name} - WBS Gantt Planner")

    def set_tasks(self, tasks, reset_expanded=True):
        self.tasks = tasks
        self.refresh_hierarchy(reset_expanded)

    def refresh_hierarchy(self, reset_expanded=False):
        """Rebuilds everything derived from the task list; expand toggles skip this."""
        self.tree = build_hierarchy(self.tasks)
        self.wbs_codes = assign_wbs_codes(self.tree)
        self.view_settings = derive_view_settings(self.tasks)
        if reset_expanded:
            self.expanded = initial_expanded_state(self.tree)
        else:
            known_ids = {t['id'] for t in self.tasks}
            self.expanded = {task_id for task_id in self.expanded if task_id in known_ids}
        self.populate_treeview()
        self.redraw()

    def new_blank_project(self):
        self.project_name_var.set("New Project")
        self.current_filepath = None
        self.set_tasks([])
        self.update_window_title()

    def load_template(self):
        self.project_name_var.set("New Project from Template")
        self.current_filepath = None
        self.set_tasks(build_template_tasks(date.today()))
        self.update_window_title()

    def open_project(self):
        filepath = filedialog.askopenfilename(
            filetypes=[("Gantt Project Files", "*.gantt"), ("All Files", "*.*")]
        )
        if not filepath:
            return

        try:
            project_name, tasks = load_project(filepath)
        except (OSError, ValueError) as e:
            messagebox.showerror("Open Project", f"Could not open project: {e}")
            return

        self.current_filepath = filepath
        self.project_name_var.set(project_name)
        self.set_tasks(tasks)
        self.update_window_title()

    def save_project_as(self):
        filepath = filedialog.asksaveasfilename(
            defaultextension=".gantt",
            filetypes=[("Gantt Project Files", "*.gantt"), ("All Files", "*.*")]
        )
        if not filepath:
            return

        save_project(filepath, self.project_name_var.get(), self.tasks)
        self.current_filepath = filepath
        self.update_window_title()

    def import_tasks(self):
        filepath = filedialog.askopenfilename(
            filetypes=[("Spreadsheets", "*.csv *.xls *.xlsx"), ("All Files", "*.*")],
            title="Import Tasks"
        )
        if not filepath:
            return

        try:
            columns = [str(col) for col in read_table(filepath).columns]
            dialog = ColumnMappingDialog(self, "Map Columns", columns)
            if not dialog.mapping:
                return  # User cancelled
            tasks = import_from_file(filepath, dialog.mapping)
        except Exception as e:
            messagebox.showerror("Import Error", f"An error occurred while importing the file: {e}")
            return

        self.project_name_var.set("Imported Project")
        self.current_filepath = None
        self.set_tasks(tasks)
        self.update_window_title()

    def export_tasks(self):
        filepath = filedialog.asksaveasfilename(
            title="Export Tasks",
            defaultextension=".csv",
            filetypes=[("CSV File", "*.csv"), ("Excel Workbook", "*.xlsx"), ("All Files", "*.*")]
        )
        if not filepath:
            return

        try:
            export_to_file(filepath, self.tasks)
        except Exception as e:
            messagebox.showerror("Export Error", f"An error occurred while exporting the tasks: {e}")

    def export_chart(self):
        if not self.tasks:
            messagebox.showinfo("Export Chart", "There is nothing to export.")
            return

        filepath = filedialog.asksaveasfilename(
            title="Export Gantt Chart",
            defaultextension=".png",
            filetypes=[
                ("PNG Image", "*.png"),
                ("PDF Document", "*.pdf"),
                ("SVG Vector Image", "*.svg"),
                ("All Files", "*.*")
            ]
        )
        if not filepath:
            return

        try:
            self.figure.savefig(filepath, bbox_inches='tight', dpi=300)
            messagebox.showinfo("Export Successful", f"Chart successfully saved to\n{filepath}")
        except Exception as e:
            messagebox.showerror("Export Error", f"An error occurred while exporting the chart: {e}")

    def build_controls(self):
        for widget in self.control_frame.winfo_children():
            widget.destroy()

        settings_frame = ttk.LabelFrame(self.control_frame, text="Project Settings", padding="10")
        settings_frame.pack(fill=tk.X, pady=5)

        ttk.Label(settings_frame, text="Project Name:").grid(row=0, column=0, sticky="w")
        project_name_entry = ttk.Entry(settings_frame, textvariable=self.project_name_var)
        project_name_entry.grid(row=0, column=1, sticky="w", pady=2)
        project_name_entry.bind("<FocusOut>", self.on_ui_change)
        project_name_entry.bind("<Return>", self.on_ui_change)

        ttk.Label(settings_frame, text="Show Dependencies:").grid(row=1, column=0, sticky="w", pady=5)
        deps_toggle = ttk.Checkbutton(settings_frame, variable=self.show_dependencies_var, command=self.redraw)
        deps_toggle.grid(row=1, column=1, sticky="w")

        editor_frame = ttk.LabelFrame(self.control_frame, text="Work Breakdown", padding="10")
        editor_frame.pack(fill=tk.BOTH, expand=True, pady=5)

        columns = ("wbs", "start_date", "end_date", "status", "progress")
        self.task_tree = ttk.Treeview(editor_frame, columns=columns, show="tree headings")

        self.task_tree.heading("#0", text="Task Name")
        self.task_tree.column("#0", width=220, anchor='w')

        self.task_tree.heading("wbs", text="WBS")
        self.task_tree.column("wbs", width=60, anchor='w')

        self.task_tree.heading("start_date", text="Start")
        self.task_tree.column("start_date", width=90, anchor='center')

        self.task_tree.heading("end_date", text="End")
        self.task_tree.column("end_date", width=90, anchor='center')

        self.task_tree.heading("status", text="Status")
        self.task_tree.column("status", width=90, anchor='center')

        self.task_tree.heading("progress", text="%")
        self.task_tree.column("progress", width=40, anchor='center')

        self.task_tree.pack(fill=tk.BOTH, expand=True)
        self.task_tree.bind("<Double-1>", self.on_tree_double_click)
        self.task_tree.bind("<<TreeviewOpen>>", self.on_tree_open)
        self.task_tree.bind("<<TreeviewClose>>", self.on_tree_close)

        action_frame = ttk.Frame(self.control_frame)
        action_frame.pack(fill=tk.X, pady=10)

        ttk.Button(action_frame, text="Add Task", command=self.add_task).pack(side=tk.LEFT, padx=5)
        ttk.Button(action_frame, text="Edit Task", command=self.edit_task).pack(side=tk.LEFT, padx=5)
        ttk.Button(action_frame, text="Remove Task", command=self.remove_task).pack(side=tk.LEFT, padx=5)
        ttk.Button(action_frame, text="Auto-Schedule", command=self.auto_schedule).pack(side=tk.LEFT, padx=5)

    def populate_treeview(self):
        for i in self.task_tree.get_children():
            self.task_tree.delete(i)

        stack = [("", node) for node in reversed(self.tree)]
        while stack:
            parent_iid, node = stack.pop()
            self.task_tree.insert(
                parent_iid, "end", iid=node['id'], text=node['name'], open=node['id'] in self.expanded,
                values=(self.wbs_codes.get(node['id'], ""), node['start_date'].isoformat(),
                        node['end_date'].isoformat(), node['status'], node.get('progress', 0))
            )
            for child in reversed(node['children']):
                stack.append((node['id'], child))

    def on_tree_open(self, event=None):
        iid = self.task_tree.focus()
        if iid and iid not in self.expanded:
            self.expanded = toggle_expanded(self.expanded, iid)
            self.redraw()

    def on_tree_close(self, event=None):
        iid = self.task_tree.focus()
        if iid and iid in self.expanded:
            self.expanded = toggle_expanded(self.expanded, iid)
            self.redraw()

    def on_tree_double_click(self, event):
        iid = self.task_tree.identify_row(event.y)
        if iid and self.task_tree.identify_column(event.x) != "#0":
            self.edit_task(task_id=iid)

    def expand_all(self):
        self.expanded = expand_all(self.tree)
        self.populate_treeview()
        self.redraw()

    def collapse_all(self):
        self.expanded = set()
        self.populate_treeview()
        self.redraw()

    def _selected_task_id(self, action):
        selected_item = self.task_tree.selection()
        if not selected_item:
            messagebox.showwarning(action, "Please select a task first.")
            return None
        return selected_item[0]

    def _task_by_id(self, task_id):
        for task in self.tasks:
            if task['id'] == task_id:
                return task
        return None

    def edit_task(self, task_id=None):
        task_id = task_id or self._selected_task_id("Edit Task")
        task_to_edit = self._task_by_id(task_id) if task_id else None
        if not task_to_edit:
            return

        dialog = EditTaskDialog(self, "Edit Task", task_to_edit, self.tasks)
        if dialog.result:
            self.refresh_hierarchy()

    def add_task(self):
        existing_ids = {t['id'] for t in self.tasks}
        n = len(self.tasks) + 1
        while f"task-{n}" in existing_ids:
            n += 1

        parent_id = None
        selected_item = self.task_tree.selection()
        if selected_item:
            parent_id = selected_item[0]
            self.expanded.add(parent_id)

        start = self.tasks[-1]['end_date'] if self.tasks else date.today()
        self.tasks.append(normalize_task({
            "id": f"task-{n}",
            "name": f"New Task {n}",
            "parent_id": parent_id,
            "start_date": start,
            "duration": 1,
        }))
        self.refresh_hierarchy()

    def remove_task(self):
        task_id = self._selected_task_id("Remove Task")
        task_to_remove = self._task_by_id(task_id) if task_id else None
        if not task_to_remove:
            return

        # Children move up to the removed task's parent; links to it are dropped.
        for other_task in self.tasks:
            if other_task.get('parent_id') == task_id:
                other_task['parent_id'] = task_to_remove.get('parent_id')
            other_task['predecessors'] = [link for link in other_task.get('predecessors') or []
                                          if link['predecessor_id'] != task_id]

        self.tasks.remove(task_to_remove)
        self.refresh_hierarchy()

    def auto_schedule(self):
        task_id = self._selected_task_id("Auto-Schedule")
        task = self._task_by_id(task_id) if task_id else None
        if not task:
            return

        tasks_by_id = {t['id']: t for t in self.tasks}
        is_valid, violations = validate_task_schedule(task, tasks_by_id)
        changes = auto_schedule_task(task, tasks_by_id)
        if not changes:
            messagebox.showinfo("Auto-Schedule", "This task has no predecessors.")
            return
        if is_valid and changes['start_date'] == task['start_date']:
            messagebox.showinfo("Auto-Schedule", "This task is already at its earliest start.")
            return

        logger.info("Rescheduling '%s' to %s (%s)", task_id, changes['start_date'], "; ".join(violations))
        task.update(changes)
        self.refresh_hierarchy()

    def show_stats(self):
        stats = project_stats(self.tasks)
        path = " -> ".join(find_task(self.tree, task_id)['name'] for task_id in stats['critical_path'])
        lines = [
            f"Total tasks: {stats['total_tasks']}",
            f"Completed: {stats['completed_tasks']}",
            f"Remaining: {stats['remaining_tasks']}",
            f"Average progress: {stats['average_progress']}%",
        ]
        lines += [f"  {status}: {count}" for status, count in stats['by_status'].items()]
        lines.append(f"Critical path: {path or 'n/a'}")
        messagebox.showinfo("Project Statistics", "\n".join(lines))

    def redraw(self):
        try:
            self.rows = layout_rows(flatten_visible(self.tree, self.expanded), self.view_settings)
            self.chart_items = draw_gantt_chart(
                self.ax, self.rows, self.view_settings,
                title=self.project_name_var.get(),
                expanded=self.expanded,
                wbs_codes=self.wbs_codes,
                show_dependencies=self.show_dependencies_var.get(),
            )
            self.figure.tight_layout()
            self.canvas.draw()
        except Exception as e:
            logger.exception("Chart update failed")
            messagebox.showerror("Error", f"Could not update chart: {e}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = GanttChartApp()
    app.mainloop()
