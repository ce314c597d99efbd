"""
branchdo interactive list screen — ``src/branchdo/ui/``.

``state``, ``dispatch``, ``render`` and ``services`` are pure Python and
testable without a terminal; ``app`` hosts them in a Textual application.

Entry point::

    from branchdo.ui.app import run_list_session
"""
