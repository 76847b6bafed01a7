import json
import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from .exceptions import InvalidRunParameters
from .models import Invoice
from .services import (check_existing, close_month, collect_payment,
                       generate_invoices, generate_jobs, months_overview,
                       revert_month)

logger = logging.getLogger(__name__)


def _params(request):
    """Merge query string, form data and a JSON body into one dict."""
    params = request.GET.dict()
    if request.method == "POST":
        if request.content_type == "application/json" and request.body:
            try:
                body = json.loads(request.body)
            except json.JSONDecodeError:
                raise InvalidRunParameters("Request body is not valid JSON") from None
            if not isinstance(body, dict):
                raise InvalidRunParameters("Request body must be a JSON object")
            params.update(body)
        else:
            params.update(request.POST.dict())
    return params


def _error(message, status):
    return JsonResponse({"success": False, "message": message}, status=status)


def _user(request):
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return user
    return None


def json_endpoint(view):
    """Map expected failures to 400 and anything else to a 500 JSON body."""

    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except (InvalidRunParameters, ValidationError) as e:
            return _error(str(e), 400)
        except Invoice.DoesNotExist:
            return _error("Invoice not found", 404)
        except Exception as e:
            logger.exception("%s failed", view.__name__)
            return _error(str(e) or e.__class__.__name__, 500)

    wrapper.__name__ = view.__name__
    wrapper.__doc__ = view.__doc__
    return wrapper


# Jobs
@require_POST
@json_endpoint
def generate_jobs_view(request):
    params = _params(request)
    result = generate_jobs(target_date=params.get("date") or None)
    return JsonResponse(result.as_dict())


# Invoices
@require_POST
@json_endpoint
def generate_invoices_view(request):
    params = _params(request)
    result = generate_invoices(
        year=params.get("year"),
        month=params.get("month"),
        mode=params.get("mode") or None,
        created_by=getattr(_user(request), "username", None),
    )
    # blocked by duplicates: the caller must not retry blindly
    return JsonResponse(result.as_dict(), status=409 if result.blocked else 200)


@require_GET
@json_endpoint
def check_existing_view(request):
    params = _params(request)
    if not params.get("year") or not params.get("month"):
        raise InvalidRunParameters("year and month are required")
    return JsonResponse(check_existing(params["year"], params["month"]))


@require_POST
@json_endpoint
def collect_payment_view(request, invoice_id):
    params = _params(request)
    invoice, payment_tx = collect_payment(
        invoice_id,
        params.get("amount"),
        payment_mode=params.get("payment_mode") or "cash",
        user=_user(request),
    )
    return JsonResponse({
        "success": True,
        "invoice": invoice.pk,
        "transaction": payment_tx.pk,
        "amount_paid": invoice.amount_paid,
        "balance": invoice.balance,
        "status": invoice.status,
    })


# Month-end
@require_POST
@json_endpoint
def close_month_view(request):
    params = _params(request)
    result = close_month(params.get("year"), params.get("month"), user=_user(request))
    return JsonResponse(result.as_dict())


@require_POST
@json_endpoint
def revert_month_view(request):
    params = _params(request)
    result = revert_month(params.get("year"), params.get("month"), user=_user(request))
    return JsonResponse(result.as_dict())


@require_GET
@json_endpoint
def months_overview_view(request):
    # safe=False: top-level JSON list
    return JsonResponse(months_overview(), safe=False)
