"""Exception hierarchy shared by the layout engine and the editor.

Three families, matching how the editor reacts to them:

  * ``ValidationError``: bad user input caught locally (form fields, matrix
    dimensions, request preconditions). Raised *before* any mutation.
  * ``SyncError``: the optimizer service could not be reached or answered
    with a non-2xx status.
  * ``PayloadError``: the service answered, but nothing usable could be
    extracted from the response body.

The editor catches ``PlannerError`` at its UI boundary and shows a dialog.
Nothing here is retried automatically.
"""


class PlannerError(Exception):
    pass


class ValidationError(PlannerError):
    pass


class SyncError(PlannerError):
    pass


class PayloadError(PlannerError):
    pass
