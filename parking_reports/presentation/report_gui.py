# File: parking_reports/presentation/report_gui.py
"""
Booking Report Window

Tkinter front end for the report controller.

Key Features:
1. Ongoing / Upcoming / Past tabs with live counts
2. Category filter, free-text search, sortable column headings
3. Page navigation
4. CSV / PDF export buttons and invoice download (customer mode)
5. One-line status bar showing the latest notification

Architecture:
- An asyncio loop is stepped from the Tk main loop (AsyncRunner), so the
  controller is only ever read and changed on the Tk thread
- Backend fetches and document rendering run in worker threads
"""

import tkinter as tk
from tkinter import ttk, messagebox
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set, Tuple
import asyncio
import logging

from ..application.report_controller import ReportController
from ..config import AppConfig, Theme
from ..domain.models import BookingCategory, CustomerProfile, SortDirection, SortKey, ALL_CATEGORIES
from ..infrastructure.messaging import NotificationLevel


# ============================================================================
# ASYNC BRIDGE
# ============================================================================

class AsyncRunner:
    """
    Drives an asyncio event loop from the Tk main loop

    The loop is stepped from `after` callbacks on the Tk thread, so controller
    coroutines and widgets share one thread. Blocking work inside those
    coroutines goes through asyncio.to_thread.
    """

    POLL_INTERVAL_MS = 50

    def __init__(self, root: tk.Misc):
        self.root = root
        self.loop = asyncio.new_event_loop()
        self.logger = logging.getLogger(self.__class__.__name__)
        self._tasks: Set[asyncio.Task] = set()
        self._poll_id = self.root.after(self.POLL_INTERVAL_MS, self._poll)

    def submit(self, coro: Coroutine, on_done: Callable[[Any], None]) -> asyncio.Task:
        """Schedule `coro` and run it up to its first suspension point"""
        task = self.loop.create_task(coro)
        self._tasks.add(task)

        def _done(fut):
            self._tasks.discard(fut)
            if fut.cancelled():
                return
            try:
                result = fut.result()
            except Exception as e:
                self.logger.error(f"Background task failed: {e}", exc_info=True)
                result = e
            self.root.after(0, on_done, result)

        task.add_done_callback(_done)
        self.step()
        return task

    def step(self):
        """Run every callback that is ready now, without blocking"""
        if self.loop.is_running() or self.loop.is_closed():
            return
        self.loop.call_soon(self.loop.stop)
        self.loop.run_forever()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _poll(self):
        self.step()
        self._poll_id = self.root.after(self.POLL_INTERVAL_MS, self._poll)

    def stop(self):
        self.root.after_cancel(self._poll_id)
        for task in list(self._tasks):
            task.cancel()
        self.step()
        self.loop.close()


# ============================================================================
# VIEWS
# ============================================================================

ADMIN_COLUMNS: List[Tuple[SortKey, str, int]] = [
    (SortKey.ID, "Parking #", 90),
    (SortKey.CUSTOMER_NAME, "Name", 130),
    (SortKey.COMPANY, "Company", 110),
    (SortKey.REGISTRATION_NUMBER, "Reg No", 110),
    (SortKey.CATEGORY, "Category", 90),
    (SortKey.LOCATION, "Location", 120),
    (SortKey.IN_TIME, "In Time", 150),
    (SortKey.OUT_TIME, "Out Time", 150),
    (SortKey.TOTAL_SPENT, "Total Spent", 100),
]

CUSTOMER_COLUMNS: List[Tuple[SortKey, str, int]] = [
    (SortKey.COMPANY, "Company", 120),
    (SortKey.REGISTRATION_NUMBER, "Reg Number", 120),
    (SortKey.LOCATION, "Location", 130),
    (SortKey.CATEGORY, "Category", 90),
    (SortKey.IN_TIME, "In Time", 160),
    (SortKey.OUT_TIME, "Out Time", 160),
    (SortKey.TOTAL_SPENT, "Total Spent", 100),
]

TAB_ORDER = [BookingCategory.ONGOING, BookingCategory.UPCOMING, BookingCategory.PAST]


class ReportView(ttk.Frame):
    """Booking report screen bound to one ReportController"""

    def __init__(
        self,
        parent,
        controller: ReportController,
        runner: AsyncRunner,
        profile: Optional[CustomerProfile] = None,
        **kwargs
    ):
        super().__init__(parent, **kwargs)
        self.controller = controller
        self.runner = runner
        self.profile = profile
        self.columns = ADMIN_COLUMNS if controller.is_admin else CUSTOMER_COLUMNS
        self.colors = AppConfig.COLORS[Theme.LIGHT]
        self.logger = logging.getLogger(self.__class__.__name__)

        self._setup_ui()

    def _setup_ui(self):
        main_frame = ttk.Frame(self)
        main_frame.pack(fill="both", expand=True, padx=20, pady=20)

        # Header
        header_frame = ttk.Frame(main_frame)
        header_frame.pack(fill="x", pady=(0, 10))

        title = "Booking Report" if self.controller.is_admin else "My Bookings"
        ttk.Label(header_frame, text=title, font=AppConfig.FONTS["title"]).pack(side="left")

        actions = [
            ("Refresh", self.refresh),
            ("Export CSV", self._export_csv),
            ("Export PDF", self._export_pdf),
        ]
        if not self.controller.is_admin:
            actions.append(("Download Invoice", self._export_invoice))

        self.action_buttons: Dict[str, ttk.Button] = {}
        for text, command in reversed(actions):
            btn = ttk.Button(header_frame, text=text, command=command, cursor="hand2")
            btn.pack(side="right", padx=(10, 0))
            self.action_buttons[text] = btn

        # Filters
        filter_frame = ttk.Frame(main_frame)
        filter_frame.pack(fill="x", pady=(0, 10))

        ttk.Label(filter_frame, text="Category:").pack(side="left", padx=(0, 5))
        self.category_var = tk.StringVar(value=ALL_CATEGORIES)
        self.category_box = ttk.Combobox(
            filter_frame, textvariable=self.category_var, values=[ALL_CATEGORIES], state="readonly", width=18
        )
        self.category_box.pack(side="left", padx=(0, 15))
        self.category_box.bind("<<ComboboxSelected>>", self._on_category_selected)

        ttk.Label(filter_frame, text="Search:").pack(side="left", padx=(0, 5))
        self.search_var = tk.StringVar()
        search_entry = ttk.Entry(filter_frame, textvariable=self.search_var, width=30)
        search_entry.pack(side="left")
        search_entry.bind("<KeyRelease>", self._on_search_changed)

        # Tabs
        self.notebook = ttk.Notebook(main_frame)
        self.notebook.pack(fill="x")
        for category in TAB_ORDER:
            self.notebook.add(ttk.Frame(self.notebook), text=category.title)
        self.notebook.bind("<<NotebookTabChanged>>", self._on_tab_changed)

        # Table
        list_frame = ttk.Frame(main_frame)
        list_frame.pack(fill="both", expand=True, pady=(5, 0))

        self.tree = ttk.Treeview(
            list_frame,
            columns=[key.value for key, _, _ in self.columns],
            show="headings",
            height=self.controller.page_size,
            selectmode="browse",
        )
        for key, heading, width in self.columns:
            self.tree.heading(key.value, text=heading, command=lambda k=key: self._on_heading(k))
            self.tree.column(key.value, width=width, anchor="w")
        self.tree.tag_configure("stripe", background="#f5f7fa")

        scrollbar = ttk.Scrollbar(list_frame, command=self.tree.yview)
        scrollbar.pack(side="right", fill="y")
        self.tree.config(yscrollcommand=scrollbar.set)
        self.tree.pack(fill="both", expand=True)

        # Pager
        pager = ttk.Frame(main_frame)
        pager.pack(fill="x", pady=(10, 0))
        self.prev_button = ttk.Button(pager, text="< Prev", command=self._prev_page)
        self.prev_button.pack(side="left")
        self.page_label = ttk.Label(pager, text="")
        self.page_label.pack(side="left", padx=10)
        self.next_button = ttk.Button(pager, text="Next >", command=self._next_page)
        self.next_button.pack(side="left")

        # Status bar
        self.status_var = tk.StringVar(value="")
        self.status_label = ttk.Label(main_frame, textvariable=self.status_var, font=AppConfig.FONTS["small"])
        self.status_label.pack(fill="x", pady=(10, 0))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self):
        """Redraw every widget from controller state"""
        controller = self.controller
        counts = controller.counts()
        for index, category in enumerate(TAB_ORDER):
            self.notebook.tab(index, text=f"{category.title} ({counts[category]})")

        self.category_box.configure(values=[ALL_CATEGORIES] + controller.categories())

        for item in self.tree.get_children():
            self.tree.delete(item)

        page = controller.view()
        fmt = controller.formatter
        for row, booking in enumerate(page.items):
            values = []
            for key, _, _ in self.columns:
                if key.is_date:
                    values.append(fmt.timestamp(getattr(booking, key.value)))
                elif key.is_numeric:
                    values.append(fmt.amount(booking.total_spent))
                else:
                    values.append(booking.display(key.value))
            self.tree.insert("", "end", iid=booking.id, values=values, tags=("stripe",) if row % 2 else ())

        for key, heading, _ in self.columns:
            marker = ""
            if controller.sort is not None and controller.sort.key is key:
                marker = " ^" if controller.sort.direction is SortDirection.ASC else " v"
            self.tree.heading(key.value, text=heading + marker)

        total_pages = max(page.total_pages, 1)
        self.page_label.configure(text=f"Page {page.page} of {total_pages} ({page.total_items} bookings)")
        self.prev_button.state(["!disabled"] if page.has_prev else ["disabled"])
        self.next_button.state(["!disabled"] if page.has_next else ["disabled"])

        busy = controller.loading or controller.exporting is not None
        for btn in self.action_buttons.values():
            btn.state(["disabled"] if busy else ["!disabled"])

        self._render_status()

    def _render_status(self):
        controller = self.controller
        if controller.loading:
            text, color = "Loading bookings...", self.colors["text_muted"]
        elif controller.exporting:
            text, color = f"Exporting {controller.exporting}...", self.colors["text_muted"]
        elif controller.latest_notification is not None:
            note = controller.latest_notification
            text, color = note.body, self._level_colors().get(note.level, self.colors["fg"])
        else:
            text, color = "", self.colors["fg"]
        self._show_status(text, color)

    def _level_colors(self) -> Dict[NotificationLevel, str]:
        return {
            NotificationLevel.ERROR: self.colors["danger"],
            NotificationLevel.SUCCESS: self.colors["success"],
            NotificationLevel.INFO: self.colors["text_muted"],
        }

    def _show_status(self, text: str, color: str):
        self.status_var.set(text)
        self.status_label.configure(foreground=color)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def refresh(self):
        if self.controller.loading:
            return
        self.runner.submit(self.controller.refresh(), lambda _: self.render())
        self.render()

    def _on_tab_changed(self, event):
        index = self.notebook.index(self.notebook.select())
        self.controller.set_tab(TAB_ORDER[index])
        self.render()

    def _on_category_selected(self, event):
        self.controller.set_category(self.category_var.get())
        self.render()

    def _on_search_changed(self, event):
        self.controller.set_search(self.search_var.get())
        self.render()

    def _on_heading(self, key: SortKey):
        self.controller.request_sort(key)
        self.render()

    def _prev_page(self):
        self.controller.prev_page()
        self.render()

    def _next_page(self):
        self.controller.next_page()
        self.render()

    def _export_csv(self):
        self._submit_export(self.controller.export_csv())

    def _export_pdf(self):
        self._submit_export(self.controller.export_pdf())

    def _export_invoice(self):
        selection = self.tree.selection()
        if not selection:
            messagebox.showinfo("Invoice", "Select a booking first")
            return
        if self.profile is None:
            messagebox.showerror("Invoice", "No customer profile loaded")
            return
        self._submit_export(self.controller.export_invoice(selection[0], self.profile))

    def _submit_export(self, coro: Coroutine):
        # The first step sets controller.exporting, so this render disables the buttons
        self.runner.submit(coro, self._on_export_done)
        self.render()

    def _on_export_done(self, result):
        self.render()
        if isinstance(result, Exception):
            messagebox.showerror("Export", str(result))
        elif not result.success:
            self._show_status(result.message, self.colors["danger"])


# ============================================================================
# APPLICATION WINDOW
# ============================================================================

class ReportApp:
    """Main window hosting one ReportView"""

    def __init__(self, controller: ReportController, profile: Optional[CustomerProfile] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.root = tk.Tk()
        self.root.title(f"{AppConfig.APP_NAME} v{AppConfig.VERSION}")
        self.root.geometry(f"{AppConfig.DEFAULT_WIDTH}x{AppConfig.DEFAULT_HEIGHT}")
        self.root.minsize(AppConfig.MIN_WIDTH, AppConfig.MIN_HEIGHT)
        self.root.configure(bg=AppConfig.COLORS[Theme.LIGHT]["bg"])
        self.root.protocol("WM_DELETE_WINDOW", self.close)

        self.runner = AsyncRunner(self.root)
        self.view = ReportView(self.root, controller, self.runner, profile=profile)
        self.view.pack(fill="both", expand=True)
        self.logger.info("Report window created")

    def run(self):
        self.view.refresh()
        self.root.mainloop()

    def close(self):
        self.logger.info("Closing report window")
        self.runner.stop()
        self.root.destroy()
