"""Top-level package for SmartSpend.

SmartSpend is a small personal expense tracker built on Streamlit.  The
primary modules are:

* ``catalog`` – the fixed list of spending categories, default monthly
  limits and display colours
* ``aggregation`` – pure functions turning expenses and budgets into the
  monthly figures shown on the dashboard
* ``reconciliation`` – the bridge between UI actions and the record store
* ``extractor`` – free-text to expense parsing through a hosted language model
* ``export`` – CSV export of the expense history

To run the app from the command line you can execute:

```bash
python run_app.py
```
"""

from . import aggregation  # noqa: F401  # re-exported for convenience
from . import catalog  # noqa: F401  # re-exported for convenience


__all__ = ["aggregation", "catalog"]
