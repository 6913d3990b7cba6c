"""
tkinter desktop UI.

A thin adapter over the monitor core: it drains the context's event queue
on the Tk thread, paints chart draw operations onto canvases, and wires
buttons, the settings window and the tray icon to orchestrator calls.
"""

import logging
import threading
import tkinter as tk
from datetime import datetime
from pathlib import Path
from tkinter import filedialog, messagebox, ttk
from typing import Any, Dict, Optional

import pystray
from PIL import Image, ImageDraw, ImageTk
from pystray import MenuItem as item

from feepulse import APP_NAME, __version__
from feepulse.alerts import AlertThresholds
from feepulse.chart import (
    FEE_SERIES,
    MEMPOOL_SERIES,
    PRICE_SERIES,
    ChartEngine,
    CircleOp,
    LineOp,
    PolylineOp,
    RectOp,
    TextOp,
    plot_history,
    plot_snapshot,
)
from feepulse.context import UICollaborator
from feepulse.export import default_export_name, export_history
from feepulse.models import (
    AlertEvent,
    FeeSnapshot,
    MempoolSnapshot,
    PriceSnapshot,
    estimate_tx_cost,
)
from feepulse.notifications import NotificationManager
from feepulse.orchestrator import UpdateOrchestrator
from feepulse.settings import MIN_REFRESH_INTERVAL, THEMES, save_settings, settings_path

logger = logging.getLogger(__name__)

EVENT_POLL_MS = 200
MAX_ALERT_ROWS = 100
ZOOM_STEP = 1.1

DARK_COLORS = {
    'primary': '#F7931A', 'secondary': '#6B7280', 'accent': '#8B5CF6',
    'background': '#11111B', 'surface': '#1E1E2E', 'card': '#313244',
    'text_primary': '#CDD6F4', 'text_secondary': '#A6ADC8',
    'success': '#A6E3A1', 'warning': '#F9E2AF', 'error': '#F38BA8',
}

LIGHT_COLORS = {
    'primary': '#F7931A', 'secondary': '#6B7280', 'accent': '#7C3AED',
    'background': '#EFF1F5', 'surface': '#FFFFFF', 'card': '#E6E9EF',
    'text_primary': '#1E293B', 'text_secondary': '#475569',
    'success': '#15803D', 'warning': '#B45309', 'error': '#B91C1C',
}


def theme_colors(theme: str) -> Dict[str, str]:
    return LIGHT_COLORS if theme == 'light' else DARK_COLORS


def create_app_icon(size: int = 64) -> Image.Image:
    """Orange coin with a stylized B"""
    image = Image.new('RGBA', (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    center = size // 2
    unit = max(1, size // 16)

    draw.ellipse([unit, unit, size - unit, size - unit],
                 fill='#F7931A', outline='#C46F0C', width=max(1, unit // 2))
    draw.rectangle([center - 4 * unit, center - 5 * unit, center - 2 * unit, center + 5 * unit],
                   fill='white')
    draw.rectangle([center - 4 * unit, center - 5 * unit, center + 3 * unit, center - 3 * unit],
                   fill='white')
    draw.rectangle([center - 4 * unit, center - unit, center + 4 * unit, center + unit],
                   fill='white')
    draw.rectangle([center - 4 * unit, center + 3 * unit, center + 4 * unit, center + 5 * unit],
                   fill='white')
    return image


class SafeSystemTray:
    """System tray icon with show/refresh/exit actions"""

    def __init__(self):
        self.tray_icon = None
        self.running = False

    def setup_tray(self, app: 'FeePulseApp') -> bool:
        try:
            self.tray_icon = pystray.Icon(
                "feepulse_monitor",
                create_app_icon(),
                APP_NAME,
                menu=pystray.Menu(
                    item('Show FeePulse', lambda: app.call_soon(app.show_window), default=True),
                    item('Refresh now', lambda: app.call_soon(app.manual_refresh)),
                    item('Change source', lambda: app.call_soon(app.change_source)),
                    pystray.Menu.SEPARATOR,
                    item('Exit', lambda: app.call_soon(app.quit_application)),
                ),
            )
            logger.info("System tray configured successfully")
            return True
        except Exception as e:
            logger.error(f"System tray setup failed: {e}")
            self.tray_icon = None
            return False

    @property
    def available(self) -> bool:
        return self.tray_icon is not None

    def run_tray(self) -> None:
        if not self.tray_icon:
            return
        try:
            self.running = True
            self.tray_icon.run()
        except Exception as e:
            logger.error(f"System tray runtime error: {e}")
        finally:
            self.running = False

    def stop_tray(self) -> None:
        if self.tray_icon and self.running:
            try:
                self.tray_icon.stop()
            except Exception as e:
                logger.warning(f"Tray stop error: {e}")


class ChartCanvas:
    """Binds a ChartEngine to a tk.Canvas: paints draw ops, handles drag and wheel"""

    def __init__(self, parent, engine: ChartEngine, width: int = 640, height: int = 280):
        self.engine = engine
        self.canvas = tk.Canvas(parent, width=width, height=height, highlightthickness=0)
        self._drag_x: Optional[float] = None

        self.canvas.bind('<Configure>', lambda e: self.redraw())
        self.canvas.bind('<ButtonPress-1>', self._on_press)
        self.canvas.bind('<B1-Motion>', self._on_drag)
        self.canvas.bind('<ButtonRelease-1>', self._on_release)
        self.canvas.bind('<Double-Button-1>', self._on_reset)
        self.canvas.bind('<MouseWheel>', self._on_wheel)
        self.canvas.bind('<Button-4>', lambda e: self._zoom_at(ZOOM_STEP, e.x))
        self.canvas.bind('<Button-5>', lambda e: self._zoom_at(1 / ZOOM_STEP, e.x))

    def size(self):
        return self.canvas.winfo_width(), self.canvas.winfo_height()

    def redraw(self) -> None:
        width, height = self.size()
        self.canvas.delete('all')
        for op in self.engine.render(width, height):
            if isinstance(op, RectOp):
                self.canvas.create_rectangle(op.x, op.y, op.x + op.width, op.y + op.height,
                                             fill=op.fill, outline='')
            elif isinstance(op, LineOp):
                self.canvas.create_line(op.x1, op.y1, op.x2, op.y2, fill=op.color, width=op.width)
            elif isinstance(op, PolylineOp):
                if len(op.points) > 1:
                    flat = [coord for point in op.points for coord in point]
                    self.canvas.create_line(*flat, fill=op.color, width=op.width)
            elif isinstance(op, CircleOp):
                self.canvas.create_oval(op.x - op.radius, op.y - op.radius,
                                        op.x + op.radius, op.y + op.radius,
                                        fill=op.fill, outline='')
            elif isinstance(op, TextOp):
                self.canvas.create_text(op.x, op.y, text=op.text, fill=op.color,
                                        anchor=op.anchor, font=('Segoe UI', op.size))

    def _on_press(self, event) -> None:
        self._drag_x = event.x

    def _on_drag(self, event) -> None:
        if self._drag_x is None:
            return
        # dragging right reveals older data
        self.engine.on_pan(self._drag_x - event.x, self.size()[0])
        self._drag_x = event.x
        self.redraw()

    def _on_release(self, event) -> None:
        self._drag_x = None

    def _on_reset(self, event) -> None:
        self.engine.reset_zoom()
        self.redraw()

    def _on_wheel(self, event) -> None:
        self._zoom_at(ZOOM_STEP if event.delta > 0 else 1 / ZOOM_STEP, event.x)

    def _zoom_at(self, factor: float, x: float) -> None:
        if self.engine.on_zoom(factor, x, self.size()[0]):
            self.redraw()


class FeePulseApp(UICollaborator):
    """Main window"""

    def __init__(self, orchestrator: UpdateOrchestrator, settings: Dict[str, Any],
                 data_dir: Path, use_tray: bool = True):
        self.orchestrator = orchestrator
        self.context = orchestrator.context
        self.settings = settings
        self.data_dir = Path(data_dir)
        self.colors = theme_colors(settings['theme'])
        self.use_tray = use_tray

        self.root: Optional[tk.Tk] = None
        self.gui_initialized = False
        self.settings_window: Optional[tk.Toplevel] = None
        self.tray_manager = SafeSystemTray()
        self.notification_manager = NotificationManager(
            enabled=settings['notifications'], popup=self._show_popup)

        self.charts = {
            'fees': ChartEngine('Fee rates (sat/vB)'),
            'price': ChartEngine('BTC price (USD)'),
            'mempool': ChartEngine('Mempool transactions'),
        }
        for label in FEE_SERIES:
            self.charts['fees'].add_series(label)
        self.charts['price'].add_series(PRICE_SERIES)
        self.charts['mempool'].add_series(MEMPOOL_SERIES)
        self.chart_views: Dict[str, ChartCanvas] = {}
        self._last_plotted = 0.0

    # Setup

    def setup_gui(self) -> bool:
        try:
            self.root = tk.Tk()
            self.root.title(f"{APP_NAME} v{__version__}")
            ui = self.settings['ui_config']
            self.root.geometry(f"{ui['window_width']}x{ui['window_height']}")
            self.root.configure(bg=self.colors['background'])
            self.root.minsize(820, 600)

            self.setup_styles()
            self.create_header()
            self.create_fee_panel()
            self.create_chart_panel()
            self.create_alerts_panel()
            self.create_status_bar()

            self.root.protocol("WM_DELETE_WINDOW", self.on_closing)
            self.root.bind_all('<F5>', lambda e: self.manual_refresh())
            self.set_window_icon()

            self.gui_initialized = True
            return True
        except Exception as e:
            logger.critical(f"GUI setup failed: {e}")
            return False

    def set_window_icon(self) -> None:
        try:
            self._icon_photo = ImageTk.PhotoImage(create_app_icon(32))
            self.root.iconphoto(True, self._icon_photo)
        except Exception as e:
            logger.debug(f"Could not set window icon: {e}")

    def setup_styles(self) -> None:
        style = ttk.Style()
        try:
            style.theme_use('clam')
        except tk.TclError:
            pass
        c = self.colors
        styles = {
            'App.TFrame': {'background': c['background']},
            'Card.TFrame': {'background': c['surface']},
            'Header.TLabel': {'background': c['surface'], 'foreground': c['text_primary'],
                              'font': ('Segoe UI', 18, 'bold')},
            'Fee.TLabel': {'background': c['surface'], 'foreground': c['text_primary'],
                           'font': ('Segoe UI', 22, 'bold')},
            'Info.TLabel': {'background': c['surface'], 'foreground': c['text_secondary'],
                            'font': ('Segoe UI', 11)},
            'Title.TLabel': {'background': c['surface'], 'foreground': c['text_primary'],
                             'font': ('Segoe UI', 13, 'bold')},
        }
        for name, config in styles.items():
            style.configure(name, **config)

    def create_button(self, parent, text: str, color: str, command) -> tk.Button:
        return tk.Button(parent, text=text, command=command, bg=color, fg='white',
                         font=('Segoe UI', 10, 'bold'), border=0, padx=14, pady=6,
                         cursor='hand2', activebackground=color)

    def create_header(self) -> None:
        header = ttk.Frame(self.root, style='Card.TFrame')
        header.pack(fill='x')

        brand = ttk.Frame(header, style='Card.TFrame')
        brand.pack(side='left', padx=20, pady=12)
        ttk.Label(brand, text=APP_NAME, style='Header.TLabel').pack(anchor='w')
        self.source_label = ttk.Label(brand, text=f"Source: {self.orchestrator.current_source_name}",
                                      style='Info.TLabel')
        self.source_label.pack(anchor='w')

        controls = ttk.Frame(header, style='Card.TFrame')
        controls.pack(side='right', padx=20, pady=12)
        c = self.colors
        buttons = [
            ("Refresh", c['primary'], self.manual_refresh),
            ("Change source", c['secondary'], self.change_source),
            ("Export CSV", c['accent'], self.export_csv),
            ("Export PNG", c['accent'], self.export_png),
            ("Clear history", c['secondary'], self.clear_history),
            ("Settings", c['secondary'], self.open_settings),
        ]
        for text, color, command in reversed(buttons):
            self.create_button(controls, text, color, command).pack(side='right', padx=3)

    def create_fee_panel(self) -> None:
        panel = ttk.Frame(self.root, style='Card.TFrame')
        panel.pack(fill='x', padx=20, pady=(10, 5))

        self.fee_labels: Dict[str, ttk.Label] = {}
        for key, title in (('fastest', 'Fastest (~10 min)'), ('half_hour', 'Half hour'),
                           ('hour', 'Hour'), ('economy', 'Economy'), ('minimum', 'Minimum')):
            cell = ttk.Frame(panel, style='Card.TFrame')
            cell.pack(side='left', expand=True, fill='x', padx=10, pady=10)
            ttk.Label(cell, text=title, style='Info.TLabel').pack(anchor='w')
            value = ttk.Label(cell, text="--", style='Fee.TLabel')
            value.pack(anchor='w')
            self.fee_labels[key] = value

        info = ttk.Frame(self.root, style='Card.TFrame')
        info.pack(fill='x', padx=20, pady=5)
        self.price_label = ttk.Label(info, text="BTC price: --", style='Title.TLabel')
        self.price_label.pack(side='left', padx=10, pady=8)
        self.mempool_label = ttk.Label(info, text="Mempool: --", style='Info.TLabel')
        self.mempool_label.pack(side='left', padx=10)
        self.cost_label = ttk.Label(info, text="", style='Info.TLabel')
        self.cost_label.pack(side='right', padx=10)

    def create_chart_panel(self) -> None:
        notebook = ttk.Notebook(self.root)
        notebook.pack(fill='both', expand=True, padx=20, pady=5)
        for key, title in (('fees', 'Fees'), ('price', 'Price'), ('mempool', 'Mempool')):
            frame = ttk.Frame(notebook, style='Card.TFrame')
            notebook.add(frame, text=title)
            view = ChartCanvas(frame, self.charts[key])
            view.canvas.pack(fill='both', expand=True)
            self.chart_views[key] = view
        self.chart_notebook = notebook

    def create_alerts_panel(self) -> None:
        panel = ttk.Frame(self.root, style='Card.TFrame')
        panel.pack(fill='x', padx=20, pady=5)
        ttk.Label(panel, text="Alerts", style='Title.TLabel').pack(anchor='w', padx=10, pady=(6, 0))
        self.alerts_listbox = tk.Listbox(panel, height=4, bg=self.colors['card'],
                                         fg=self.colors['text_primary'], borderwidth=0,
                                         highlightthickness=0)
        self.alerts_listbox.pack(fill='x', padx=10, pady=6)

    def create_status_bar(self) -> None:
        bar = ttk.Frame(self.root, style='Card.TFrame')
        bar.pack(side='bottom', fill='x')
        self.status_text = ttk.Label(bar, text="Ready", style='Info.TLabel')
        self.status_text.pack(side='left', padx=10, pady=6)
        ttk.Label(bar, text=f"v{__version__}", style='Info.TLabel').pack(side='right', padx=10)

    # Event channel

    def call_soon(self, func) -> None:
        """Schedule func on the Tk thread; safe to call from any thread"""
        try:
            if self.gui_initialized and self.root and self.root.winfo_exists():
                self.root.after(0, func)
        except (RuntimeError, tk.TclError) as e:
            logger.debug(f"GUI call failed: {e}")

    def process_events(self) -> None:
        self.context.drain_events(self)
        if self.root is not None:
            self.root.after(EVENT_POLL_MS, self.process_events)

    def redraw_charts(self) -> None:
        for view in self.chart_views.values():
            view.redraw()

    def on_fee_update(self, fees: FeeSnapshot) -> None:
        for key, label in self.fee_labels.items():
            label.config(text=f"{getattr(fees, key):.1f}")

        snapshot = self.context.current
        if snapshot is not None and snapshot.fees.timestamp > self._last_plotted:
            plot_snapshot(self.charts, snapshot)
            self._last_plotted = snapshot.fees.timestamp
            self.redraw_charts()

        cost = estimate_tx_cost(fees, snapshot.price if snapshot else None)
        if cost['usd']:
            self.cost_label.config(text=f"250 vB tx: ${cost['usd']:.2f} / {cost['eur']:.2f} EUR")
        else:
            self.cost_label.config(text=f"250 vB tx: {cost['btc']:.8f} BTC")
        self.source_label.config(text=f"Source: {self.orchestrator.current_source_name}")

    def on_price_update(self, price: PriceSnapshot) -> None:
        color = self.colors['success'] if price.change_24h >= 0 else self.colors['error']
        self.price_label.config(
            text=f"BTC ${price.usd:,.2f} | {price.eur:,.2f} EUR ({price.change_24h:+.2f}%)",
            foreground=color)

    def on_mempool_update(self, mempool: MempoolSnapshot) -> None:
        self.mempool_label.config(
            text=f"Mempool: {mempool.tx_count:,} tx | {mempool.size_mb:.2f} MB | "
                 f"avg {mempool.avg_fee_sat_per_vbyte:.1f} sat/vB")

    def on_alert(self, event: AlertEvent) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        self.alerts_listbox.insert(0, f"[{stamp}] {event.title}: {event.message}")
        if self.alerts_listbox.size() > MAX_ALERT_ROWS:
            self.alerts_listbox.delete(MAX_ALERT_ROWS, tk.END)
        self.notification_manager.notify(event)

    def on_status(self, text: str) -> None:
        self.status_text.config(text=text)

    def _show_popup(self, title: str, message: str, duration: int) -> bool:
        """In-window notification used when the desktop backend fails"""
        if not self.gui_initialized:
            return False
        try:
            popup = tk.Toplevel(self.root)
            popup.title(title)
            popup.configure(bg=self.colors['surface'])
            popup.transient(self.root)
            popup.attributes("-topmost", True)
            x = self.root.winfo_x() + (self.root.winfo_width() // 2) - 175
            y = self.root.winfo_y() + (self.root.winfo_height() // 2) - 50
            popup.geometry(f"350x100+{x}+{y}")
            ttk.Label(popup, text=message, wraplength=330, style='Info.TLabel',
                      justify='center').pack(padx=20, pady=20, expand=True, fill='both')
            popup.after(duration * 1000, popup.destroy)
            return True
        except tk.TclError as e:
            logger.error(f"Popup notification failed: {e}")
            return False

    # Actions

    def manual_refresh(self) -> None:
        if self.orchestrator.request_refresh(force=True):
            self.status_text.config(text="Manual refresh requested...")
        else:
            self.status_text.config(text="Update already in progress")

    def change_source(self) -> None:
        name = self.orchestrator.cycle_source()
        self.settings['data_source'] = name
        self.source_label.config(text=f"Source: {name}")

    def export_csv(self) -> None:
        points = self.context.history_points()
        if not points:
            self.safe_show_warning("No Data", "No fee history to export.")
            return
        filename = filedialog.asksaveasfilename(
            defaultextension=".csv",
            filetypes=[("CSV files", "*.csv"), ("All files", "*.*")],
            title="Export Fee History",
            initialfile=default_export_name(),
        )
        if not filename:
            return
        try:
            rows = export_history(filename, points)
            self.safe_show_info("Export Complete", f"Exported {rows} points to\n{filename}")
        except OSError as e:
            logger.error(f"Data export failed: {e}")
            self.safe_show_error("Export Failed", f"Failed to export data: {e}")

    def export_png(self) -> None:
        key = ('fees', 'price', 'mempool')[self.chart_notebook.index('current')]
        filename = filedialog.asksaveasfilename(
            defaultextension=".png",
            filetypes=[("PNG images", "*.png")],
            title="Export Chart",
            initialfile=f"feepulse_{key}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.png",
        )
        if not filename:
            return
        if self.charts[key].export_png(filename):
            self.safe_show_info("Export Complete", f"Chart saved to\n{filename}")
        else:
            self.safe_show_error("Export Failed", "Could not save the chart image.")

    def clear_history(self) -> None:
        if not self.safe_ask_yes_no("Clear History", "Clear the fee history and charts?"):
            return
        self.context.clear_history()
        for chart in self.charts.values():
            chart.clear()
        self._last_plotted = 0.0
        self.redraw_charts()
        logger.info("Fee history cleared")

    def open_settings(self) -> None:
        if self.settings_window is not None and self.settings_window.winfo_exists():
            self.settings_window.lift()
            return

        window = tk.Toplevel(self.root)
        window.title("Settings")
        window.configure(bg=self.colors['surface'])
        window.transient(self.root)
        self.settings_window = window

        alert_config = self.settings['alert_config']
        fields = {
            'refresh_interval': tk.StringVar(value=str(self.settings['refresh_interval'])),
            'low_fee': tk.StringVar(value=str(alert_config['low_fee']['threshold'])),
            'price_change': tk.StringVar(value=str(alert_config['price_change']['threshold'])),
            'mempool_congestion': tk.StringVar(
                value=str(alert_config['mempool_congestion']['threshold'])),
        }
        labels = {
            'refresh_interval': "Refresh interval (s)",
            'low_fee': "Low fee alert (sat/vB)",
            'price_change': "Price move alert (%)",
            'mempool_congestion': "Mempool alert (tx count)",
        }
        notifications = tk.BooleanVar(value=self.settings['notifications'])
        theme = tk.StringVar(value=self.settings['theme'])

        for row, (key, var) in enumerate(fields.items()):
            ttk.Label(window, text=labels[key], style='Info.TLabel').grid(
                row=row, column=0, sticky='w', padx=12, pady=4)
            ttk.Entry(window, textvariable=var, width=12).grid(row=row, column=1, padx=12, pady=4)

        row = len(fields)
        ttk.Label(window, text="Theme (restart)", style='Info.TLabel').grid(
            row=row, column=0, sticky='w', padx=12, pady=4)
        ttk.Combobox(window, textvariable=theme, values=THEMES, state='readonly',
                     width=10).grid(row=row, column=1, padx=12, pady=4)
        ttk.Checkbutton(window, text="Desktop notifications", variable=notifications).grid(
            row=row + 1, column=0, columnspan=2, sticky='w', padx=12, pady=4)

        def apply() -> None:
            try:
                interval = max(MIN_REFRESH_INTERVAL, int(fields['refresh_interval'].get()))
                thresholds = {key: float(fields[key].get())
                              for key in ('low_fee', 'price_change', 'mempool_congestion')}
            except ValueError:
                self.safe_show_error("Invalid Settings", "Please enter numeric values.")
                return
            self.settings['refresh_interval'] = interval
            self.settings['notifications'] = notifications.get()
            self.settings['theme'] = theme.get()
            for key, value in thresholds.items():
                alert_config[key]['threshold'] = value
            alert_config['mempool_congestion']['threshold'] = int(thresholds['mempool_congestion'])
            self.apply_settings()
            window.destroy()

        self.create_button(window, "Save", self.colors['primary'], apply).grid(
            row=row + 2, column=0, columnspan=2, pady=10)

    def apply_settings(self) -> None:
        self.orchestrator.refresh_interval = self.settings['refresh_interval']
        if self.orchestrator.alert_evaluator is not None:
            self.orchestrator.alert_evaluator.thresholds = AlertThresholds.from_settings(
                self.settings['alert_config'])
        self.notification_manager.enabled = self.settings['notifications']
        self.save_settings()

    def save_settings(self) -> None:
        save_settings(self.settings, settings_path(self.data_dir))

    # Dialogs

    def safe_show_info(self, title: str, message: str) -> None:
        try:
            messagebox.showinfo(title, message)
        except tk.TclError as e:
            logger.error(f"Info message failed: {e}")

    def safe_show_warning(self, title: str, message: str) -> None:
        try:
            messagebox.showwarning(title, message)
        except tk.TclError as e:
            logger.error(f"Warning message failed: {e}")

    def safe_show_error(self, title: str, message: str) -> None:
        try:
            messagebox.showerror(title, message)
        except tk.TclError as e:
            logger.error(f"Error message failed: {e}")

    def safe_ask_yes_no(self, title: str, message: str) -> bool:
        try:
            return messagebox.askyesno(title, message)
        except tk.TclError as e:
            logger.error(f"Yes/No dialog failed: {e}")
            return False

    # Window and tray

    def minimize_to_tray(self) -> None:
        if self.tray_manager.available:
            self.root.withdraw()
            if not self.tray_manager.running:
                threading.Thread(target=self.tray_manager.run_tray, daemon=True,
                                 name="TrayIcon").start()
        else:
            self.root.iconify()

    def show_window(self) -> None:
        self.root.deiconify()
        self.root.lift()
        self.root.focus_force()

    def on_closing(self) -> None:
        if self.tray_manager.available and self.settings['ui_config']['minimize_to_tray']:
            self.minimize_to_tray()
        elif self.safe_ask_yes_no(f"Exit {APP_NAME}", "Are you sure you want to exit?"):
            self.quit_application()

    def quit_application(self) -> None:
        logger.info(f"Shutting down {APP_NAME}...")
        self.orchestrator.shutdown()
        self.save_settings()
        self.tray_manager.stop_tray()
        if self.root is not None:
            try:
                self.root.quit()
                self.root.destroy()
            except tk.TclError:
                pass
            self.root = None
        logger.info("Application shutdown complete")

    def run(self) -> bool:
        """Build the window, start monitoring and enter the Tk main loop"""
        if not self.setup_gui():
            return False

        if self.use_tray:
            self.tray_manager.setup_tray(self)

        count = plot_history(self.charts['fees'], self.context.history)
        if count:
            self._last_plotted = self.context.history.latest().timestamp
        self.redraw_charts()

        self.orchestrator.start()
        self.root.after(EVENT_POLL_MS, self.process_events)
        logger.info(f"{APP_NAME} started successfully")

        try:
            self.root.mainloop()
        except KeyboardInterrupt:
            logger.info("Application interrupted by user")
        finally:
            if self.root is not None:
                self.quit_application()
        return True
