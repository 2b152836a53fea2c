"""vidbisect - find the moment something happens in a video by bisection.

Core concept: the user looks at one frame, answers "is the item still there?",
and the search range halves. The playhead, range handles and playback loop
are driven by a small state machine that keeps mpv in sync with the model.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
