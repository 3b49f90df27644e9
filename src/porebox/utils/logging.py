""" Logging functionality for PoreBox.

Logging is controlled by the configuration file porebox.cfg, which should be
placed in the current working directory (where the python script is initiated).
All logging-related information is located in a section in the cfg-file with
heading logging; see sample file below.

By default, logging is switched off. It can be turned on by setting the keyword
'active' to True.

Logging can be time consuming if applied to functions called many times: a box model
evaluates volume variables once per sub-control volume and Newton iteration, and flux
terms once per sub-control-volume face, hence the logging is section-based. All
functions are classified as relevant for the following (overlapping) categories

    all: Used to log all methods.
    assembly: Element loops and global residual / Jacobian assembly.
    compositional: Constraint solvers and fluid systems.
    models: Volume variables, flux variables and local residuals.
    numerics: Local Jacobians.

Example logging section of porebox.cfg:

    [logging]
    # Activate logging. Without this, the rest of the section has no effect
    active: True
    # To log all functions in PoreBox, there is no need for more information.

    # To only log specific sections, use e.g.
    sections: assembly
    # multiple sections are separated by commas:
    sections: models, compositional

"""
import functools
import inspect
import logging
import os
import time
from typing import Dict

import porebox as pb

__all__ = ["time_logger"]


# Try to access configuration information, as activated by the import of PoreBox
try:
    config: Dict = pb.config["logging"]  # type: ignore
    raw_sections = config.get("sections", "all")
    active_sections = [s.strip().lower() for s in raw_sections.split(",")]
    logger_is_active = config.get("active", "false").strip().lower() == "true"
    always_log = "all" in active_sections

except KeyError:
    config = {}
    active_sections = ["all"]
    logger_is_active = False
    always_log = False

t_logger = logging.getLogger("Timer")
t_logger.setLevel(logging.INFO)


if logger_is_active and not t_logger.hasHandlers():
    # Add handler to write to file.
    time_handler = logging.FileHandler("PoreBoxTimings.log")
    time_handler.setLevel(logging.INFO)
    time_formatter = logging.Formatter("%(message)s")
    time_handler.setFormatter(time_formatter)
    t_logger.addHandler(time_handler)

# Find where in the file path the directory 'porebox' is located.
# We will use this below to strip away the common parts of file names.
# The separator (/ or \) depends on operating system.
separator = os.sep
path_length = __file__.split(separator).index("porebox")


def time_logger(sections):
    """A decorator that measures ellapsed time for a function.

    Parameters:
        sections: List of logging sections (see module documentation) the decorated
            function belongs to.

    """

    # The double nested function is needed to allow decorators with
    # default arguments
    def inner_func(func):
        @functools.wraps(func)
        def log_time(*args, **kwargs):
            if not logger_is_active:
                # Shortcut if logging is not activated.
                return func(*args, **kwargs)
            elif always_log or any([s in active_sections for s in sections]):
                # Get the name of the file, but strip away the part above
                # '/src/porebox'
                fn = separator.join(
                    inspect.getfile(func).split(separator)[path_length + 1 :]
                )

                name = f"{func.__qualname__} in file {fn}."

                t_logger.log(level=logging.INFO, msg=f"Calling {name}")

                start_time = time.perf_counter()
                value = func(*args, **kwargs)
                run_time = time.perf_counter() - start_time

                t_logger.log(
                    level=logging.INFO,
                    msg=f"Finished {name} Elapsed time: {run_time:.8f} s",
                )

                return value
            else:
                return func(*args, **kwargs)

        return log_time

    return inner_func
