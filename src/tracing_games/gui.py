"""
GUI Application for the tracing games
Selection screen with one card per game, and a game screen with the target
glyph, a drawing canvas and Check / Clear / Previous / Next controls.

Every user action is turned into a command and sent through
``GameRouter.dispatch``; this module only renders router and session state.
"""

import logging
import tkinter as tk
from tkinter import ttk, messagebox

import matplotlib
matplotlib.use("TkAgg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg

from . import commands, constants
from .config import Settings, default_game_catalog
from .models import LoadState
from .recognition import preprocess_snapshot
from .router import GameRouter, View

logger = logging.getLogger(__name__)

MODEL_POLL_MS = 200


class DrawingCanvas:
    """Canvas widget that mirrors strokes and forwards pointer events as commands"""

    def __init__(self, parent, dispatch, size=constants.CANVAS_SIZE, stroke_width=constants.STROKE_WIDTH):
        self.dispatch = dispatch
        self.size = size
        self.stroke_width = stroke_width
        self.canvas = tk.Canvas(parent, width=size, height=size, bg='white', cursor='pencil',
                                highlightthickness=4, highlightbackground='#d1d5db')
        self.canvas.pack(pady=10)

        self.canvas.bind('<ButtonPress-1>', self.start_draw)
        self.canvas.bind('<B1-Motion>', self.draw_line)
        self.canvas.bind('<ButtonRelease-1>', self.end_draw)
        self.canvas.bind('<Leave>', self.end_draw)

        self.last_x = None
        self.last_y = None

    def start_draw(self, event):
        self.dispatch(commands.BeginStroke(event.x, event.y))
        r = self.stroke_width // 2
        self.canvas.create_oval(event.x - r, event.y - r, event.x + r, event.y + r, fill='black', outline='black')
        self.last_x, self.last_y = event.x, event.y

    def draw_line(self, event):
        if self.last_x is None or self.last_y is None:
            return
        self.dispatch(commands.ExtendStroke(event.x, event.y))
        self.canvas.create_line(self.last_x, self.last_y, event.x, event.y,
                                width=self.stroke_width, fill='black', capstyle=tk.ROUND, smooth=tk.TRUE)
        self.last_x, self.last_y = event.x, event.y

    def end_draw(self, _event=None):
        if self.last_x is None:
            return
        self.dispatch(commands.EndStroke())
        self.last_x = None
        self.last_y = None

    def clear(self):
        self.canvas.delete('all')
        self.last_x = None
        self.last_y = None


class TracingGamesApp:
    """Main window: routes between the selection screen and the game screen"""

    def __init__(self, root, router):
        self.root = root
        self.router = router
        self.root.title("Learning Games")
        self.root.geometry("900x860")

        self.container = ttk.Frame(self.root, padding="16")
        self.container.pack(fill=tk.BOTH, expand=True)

        self.status_var = tk.StringVar(value="Ready")
        status_bar = ttk.Label(self.root, textvariable=self.status_var, relief=tk.SUNKEN, anchor=tk.W)
        status_bar.pack(fill=tk.X, side=tk.BOTTOM)

        self.screen = None
        self.show_selection()

    def dispatch(self, command):
        result = self.router.dispatch(command)
        self.render()
        return result

    # Selection screen

    def show_selection(self):
        self._reset_screen()
        frame = self.screen

        ttk.Label(frame, text="🎮 Learning Games", font=('Arial', 28, 'bold')).pack(pady=(10, 4))
        ttk.Label(frame, text="Choose a game to start learning!", font=('Arial', 14)).pack(pady=(0, 20))

        cards = ttk.Frame(frame)
        cards.pack(fill=tk.BOTH, expand=True)
        for column, game in enumerate(self.router.games.values()):
            card = ttk.LabelFrame(cards, text=game.name, padding="16")
            card.grid(row=column // 2, column=column % 2, padx=12, pady=12, sticky=(tk.N, tk.S, tk.E, tk.W))
            cards.columnconfigure(column % 2, weight=1)

            icon = '🔢' if game.uses_model else '✏️'
            tk.Label(card, text=icon, font=('Arial', 32),
                     bg=constants.THEME_COLORS.get(game.theme, '#6b7280'), width=3).pack(anchor=tk.W, pady=(0, 8))
            ttk.Label(card, text=game.description, font=('Arial', 12)).pack(anchor=tk.W, pady=(0, 8))
            ttk.Button(card, text="Play Now →",
                       command=lambda game_id=game.id: self.on_select(game_id)).pack(anchor=tk.W)

        self.error_label = tk.Label(frame, text="", fg='#b91c1c', font=('Arial', 12, 'bold'))
        self.error_label.pack(pady=10)
        self.update_status("Choose a game")

    def on_select(self, game_id):
        self.router.dispatch(commands.SelectGame(game_id))
        if self.router.view is View.GAME:
            self.show_game()
        else:
            self.error_label.configure(text=self.router.error_message)
            messagebox.showwarning("Game Not Found", self.router.error_message)

    # Game screen

    def show_game(self):
        self._reset_screen()
        frame = self.screen
        session = self.router.session
        config = session.config
        color = constants.THEME_COLORS.get(config.theme, '#6b7280')

        header = ttk.Frame(frame)
        header.pack(fill=tk.X)
        ttk.Button(header, text="← Back", command=self.on_back).pack(side=tk.LEFT)
        self.score_var = tk.StringVar()
        ttk.Label(header, textvariable=self.score_var, font=('Arial', 16, 'bold')).pack(side=tk.RIGHT)

        ttk.Label(frame, text=config.name, font=('Arial', 22, 'bold')).pack(pady=(8, 4))
        self.progress = ttk.Progressbar(frame, orient=tk.HORIZONTAL, mode='determinate', maximum=100)
        self.progress.pack(fill=tk.X, pady=(0, 8))

        self.counter_var = tk.StringVar()
        ttk.Label(frame, textvariable=self.counter_var, font=('Arial', 12)).pack()
        self.item_var = tk.StringVar()
        ttk.Label(frame, textvariable=self.item_var, font=('Arial', 64, 'bold')).pack()
        ttk.Label(frame, text=f"Draw this {config.item_kind}!", font=('Arial', 14)).pack()

        self.drawing_canvas = DrawingCanvas(frame, self.dispatch, size=session.surface.size,
                                            stroke_width=session.surface.stroke_width)

        self.feedback_label = tk.Label(frame, text="", font=('Arial', 14, 'bold'))
        self.feedback_label.pack(pady=(0, 8))

        controls = ttk.Frame(frame)
        controls.pack(pady=4)
        ttk.Button(controls, text="🗑️ Clear", command=self.on_clear).pack(side=tk.LEFT, padx=5)
        self.check_button = tk.Button(controls, text="✓ Check", bg=color, fg='white', command=self.on_check)
        self.check_button.pack(side=tk.LEFT, padx=5)
        self.prev_button = ttk.Button(controls, text="← Previous", command=self.on_retreat)
        self.prev_button.pack(side=tk.LEFT, padx=5)
        self.next_button = ttk.Button(controls, text="Next →", command=self.on_advance)
        self.next_button.pack(side=tk.LEFT, padx=5)
        ttk.Button(controls, text="Show model input", command=self.show_model_input).pack(side=tk.LEFT, padx=5)

        self.completion_label = tk.Label(frame, text="", bg=frame.winfo_toplevel().cget('bg'),
                                         font=('Arial', 16, 'bold'))
        self.completion_label.pack(fill=tk.X, pady=(12, 0))

        self.render()
        if session.loading:
            self.update_status("Loading AI Model... 🤖")
            self.root.after(MODEL_POLL_MS, self._poll_model)

    def _poll_model(self):
        session = self.router.session
        if session is None or session.model_handle is None:
            return
        state = session.model_handle.state
        if state is LoadState.PENDING:
            self.root.after(MODEL_POLL_MS, self._poll_model)
            return
        if state is LoadState.LOADED:
            self.update_status("Recognition model ready")
        else:
            self.update_status(f"Model unavailable, using practice scoring ({session.model_handle.error})")
        self.render()

    def render(self):
        session = self.router.session
        if self.router.view is not View.GAME or session is None:
            return
        self.score_var.set(f"Score: {session.score}")
        self.progress['value'] = session.progress
        self.counter_var.set(f"{session.index + 1} / {len(session.items)}")
        self.item_var.set(session.current_item)

        if session.feedback:
            good = session.last_result is not None and session.last_result.success
            self.feedback_label.configure(text=session.feedback,
                                          bg='#dcfce7' if good else '#fee2e2',
                                          fg='#166534' if good else '#991b1b')
        else:
            self.feedback_label.configure(text="", bg=self.root.cget('bg'))
        if not session.surface.has_ink():
            self.drawing_canvas.clear()

        self.check_button.configure(state=tk.DISABLED if session.loading else tk.NORMAL)
        self.prev_button.configure(state=tk.DISABLED if session.index == 0 else tk.NORMAL)
        self.next_button.configure(state=tk.DISABLED if session.complete else tk.NORMAL)
        if session.complete:
            self.completion_label.configure(text=f"🎉 Great job! Final Score: {session.score}", bg='#facc15')
        else:
            self.completion_label.configure(text="", bg=self.root.cget('bg'))

    def on_clear(self):
        self.dispatch(commands.Clear())
        self.drawing_canvas.clear()
        self.update_status("Canvas cleared")

    def on_check(self):
        result = self.dispatch(commands.Check())
        if result is not None:
            self.update_status(f"Checked: {'success' if result.success else 'try again'}")

    def on_advance(self):
        self.dispatch(commands.Advance())

    def on_retreat(self):
        self.dispatch(commands.Retreat())

    def on_back(self):
        self.router.dispatch(commands.Back())
        self.show_selection()

    def show_model_input(self):
        """Show the 28x28 array the digit model would receive"""
        session = self.router.session
        if session is None:
            return
        try:
            batch = preprocess_snapshot(session.surface.snapshot())
            window = tk.Toplevel(self.root)
            window.title("Model Input (28x28)")
            window.geometry("420x420")

            fig, ax = plt.subplots(figsize=(4, 4))
            ax.imshow(batch[0, :, :, 0], cmap='gray', vmin=0.0, vmax=1.0)
            ax.set_title(f"shape {batch.shape}")
            ax.axis('off')

            canvas = FigureCanvasTkAgg(fig, master=window)
            canvas.draw()
            canvas.get_tk_widget().pack(fill=tk.BOTH, expand=True)
            window.bind('<Destroy>', lambda event: plt.close(fig) if event.widget is window else None)
        except Exception as e:
            logger.exception("Could not render model input preview")
            messagebox.showerror("Error", f"Could not show model input: {e}")

    def _reset_screen(self):
        if self.screen is not None:
            self.screen.destroy()
        self.screen = ttk.Frame(self.container)
        self.screen.pack(fill=tk.BOTH, expand=True)

    def update_status(self, message):
        """Update status bar"""
        self.status_var.set(message)
        self.root.update_idletasks()


def run(router=None):
    """Create the main window and run the Tk event loop"""
    if router is None:
        router = GameRouter(default_game_catalog(), settings=Settings.from_env())
    root = tk.Tk()
    TracingGamesApp(root, router)

    # Center window on screen
    root.update_idletasks()
    x = (root.winfo_screenwidth() // 2) - (900 // 2)
    y = (root.winfo_screenheight() // 2) - (860 // 2)
    root.geometry(f"900x860+{x}+{y}")

    root.mainloop()


if __name__ == "__main__":
    run()
