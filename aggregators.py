"""
Pure aggregation helpers behind the analytics endpoints.

Every function here takes an already-fetched snapshot (model instances or any
object exposing the same attributes) and returns plain dicts/lists ready for
jsonify. Nothing here touches the database.
"""
import calendar
from collections import OrderedDict
from datetime import timedelta, timezone

from models import PRODUCT_STATUSES, SUPPLIER_CADENCES, ORGANIZATION_TYPES, ROLES

# Wire key -> attribute name on ProductType / ProductSurvey
CATEGORY_FIELDS = (
    ('protein', 'protein'),
    ('produce', 'produce'),
    ('shelfStable', 'shelf_stable'),
    ('shelfStableIndividualServing', 'shelf_stable_individual_serving'),
    ('alreadyPreparedFood', 'already_prepared_food'),
    ('other', 'other'),
)

CLAIMED_STATUSES = ('RESERVED', 'PENDING')


# ==========================================
#  KEY DERIVATION
# ==========================================
def _as_utc(ts):
    # Naive timestamps come straight from the DB and are already UTC
    if ts.tzinfo is not None:
        return ts.astimezone(timezone.utc)
    return ts


def month_key(ts):
    """ 2025-11-10T08:00Z -> '2025-11' """
    return _as_utc(ts).strftime('%Y-%m')


def day_key(ts):
    """ 2025-11-10T08:00Z -> '2025-11-10' """
    return _as_utc(ts).strftime('%Y-%m-%d')


def _hours_between(start, end):
    return (_as_utc(end).replace(tzinfo=None) - _as_utc(start).replace(tzinfo=None)).total_seconds() / 3600


def months_before(ts, months):
    """ Same day-of-month `months` calendar months earlier, clamped to the month's length. """
    month_index = ts.year * 12 + (ts.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(ts.day, calendar.monthrange(year, month)[1])
    return ts.replace(year=year, month=month, day=day)


def count_by_key(items, key):
    """ Ordered-dict accumulation: first-seen key order, one increment per item. """
    counts = OrderedDict()
    for item in items:
        k = key(item)
        counts[k] = counts.get(k, 0) + 1
    return counts


def fixed_breakdown(values, keys):
    """ Counts `values` over a closed set of keys; anything outside the set is dropped. """
    breakdown = {k: 0 for k in keys}
    for value in values:
        if value in breakdown:
            breakdown[value] += 1
    return breakdown


# ==========================================
#  1. CLAIMS TIMELINE
# ==========================================
def aggregate_claims_timeline(timestamps):
    """
    Monthly histogram of claim timestamps.
    Example: [2025-11-10, 2025-11-20, 2025-12-05]
          -> [{'month': '2025-11', 'count': 2}, {'month': '2025-12', 'count': 1}]
    """
    counts = count_by_key(timestamps, month_key)
    # 'YYYY-MM' sorts lexicographically in chronological order
    return [{'month': month, 'count': count} for month, count in sorted(counts.items())]


# ==========================================
#  2. PRODUCT DISTRIBUTION
# ==========================================
def count_categories(product_types):
    """ One count per category flag. A record can land in several categories. """
    distribution = {wire: 0 for wire, _ in CATEGORY_FIELDS}
    for pt in product_types:
        for wire, attr in CATEGORY_FIELDS:
            if getattr(pt, attr, False):
                distribution[wire] += 1
    return distribution


def count_protein_types(product_types):
    protein_counts = {}
    for pt in product_types:
        if not pt.protein or not pt.protein_types:
            continue
        for tag in pt.protein_types:
            protein_counts[tag] = protein_counts.get(tag, 0) + 1
    return protein_counts


def aggregate_product_distribution(product_types):
    product_types = list(product_types)
    return {
        'distribution': count_categories(product_types),
        'proteinTypes': count_protein_types(product_types),
    }


# ==========================================
#  3. STATUS TRENDS
# ==========================================
def aggregate_status_trends(products):
    """
    Daily AVAILABLE / RESERVED / PENDING counts, rows in first-seen date order.
    The row for a date is opened on the first product created that day,
    whatever its status; statuses outside the three columns are not counted.
    """
    rows = OrderedDict()
    for product in products:
        key = day_key(product.created_at)
        if key not in rows:
            rows[key] = {'date': key, 'AVAILABLE': 0, 'RESERVED': 0, 'PENDING': 0}
        if product.status in PRODUCT_STATUSES:
            rows[key][product.status] += 1
    return list(rows.values())


# ==========================================
#  4. SUPPLIER ACTIVITY
# ==========================================
def aggregate_supplier_activity(rows):
    """
    rows: (supplier, product_count) pairs, already ranked by product_count desc.
    """
    activity = []
    cadences = []
    for supplier, product_count in rows:
        activity.append({
            'supplierId': supplier.id,
            'name': supplier.name,
            'cadence': supplier.cadence,
            'productCount': product_count,
        })
        cadences.append(supplier.cadence)

    return {
        'activity': activity,
        'cadenceBreakdown': fixed_breakdown(cadences, SUPPLIER_CADENCES),
    }


# ==========================================
#  5. NONPROFIT ENGAGEMENT
# ==========================================
def approval_label(approval):
    if approval is True:
        return 'approved'
    if approval is False:
        return 'rejected'
    return 'pending'


def aggregate_nonprofit_engagement(rows):
    """ rows: (nonprofit, claimed_count) pairs, ranked by claimed_count desc. """
    engagement = []
    org_types = []
    approvals = []
    for nonprofit, claimed_count in rows:
        engagement.append({
            'nonprofitId': nonprofit.id,
            'name': nonprofit.name,
            'organizationType': nonprofit.organization_type,
            'claimedCount': claimed_count,
            'approvalStatus': nonprofit.nonprofit_document_approval,
        })
        org_types.append(nonprofit.organization_type)
        approvals.append(approval_label(nonprofit.nonprofit_document_approval))

    return {
        'engagement': engagement,
        'orgTypeBreakdown': fixed_breakdown(org_types, ORGANIZATION_TYPES),
        'approvalBreakdown': fixed_breakdown(approvals, ('approved', 'pending', 'rejected')),
    }


# ==========================================
#  6. SYSTEM HEALTH
# ==========================================
def breakdown_from_counts(pairs, keys):
    """ (key, count) rows from a GROUP BY -> dict over `keys` with explicit zeros. """
    breakdown = {k: 0 for k in keys}
    for key, count in pairs:
        if key in breakdown:
            breakdown[key] = count
    return breakdown


def average_claim_hours(products):
    products = list(products)
    if not products:
        return 0
    total = sum(_hours_between(p.created_at, p.updated_at) for p in products)
    return round(total / len(products), 1)


def approval_rate(approvals):
    approvals = list(approvals)
    decided = [a for a in approvals if a is not None]
    if not decided:
        return 0
    approved = len([a for a in decided if a is True])
    return round(approved / len(decided), 2)


def build_system_health(user_role_counts, status_counts, totals, claimed_products, approvals):
    return {
        'totalUsers': totals['users'],
        'usersByRole': breakdown_from_counts(user_role_counts, ROLES),
        'totalSuppliers': totals['suppliers'],
        'totalNonprofits': totals['nonprofits'],
        'totalProducts': totals['products'],
        'productsByStatus': breakdown_from_counts(status_counts, PRODUCT_STATUSES),
        'avgClaimTimeHours': average_claim_hours(claimed_products),
        'approvalRate': approval_rate(approvals),
    }


# ==========================================
#  7. SUPPLIER METRICS
# ==========================================
def claim_speed_buckets(products):
    """ Time from posting to claim for RESERVED/PENDING products. """
    speeds = {'within24h': 0, 'within48h': 0, 'within1week': 0, 'moreThan1week': 0}
    for product in products:
        if product.status not in CLAIMED_STATUSES:
            continue
        hours = _hours_between(product.created_at, product.updated_at)
        if hours <= 24:
            speeds['within24h'] += 1
        elif hours <= 48:
            speeds['within48h'] += 1
        elif hours <= 168:
            speeds['within1week'] += 1
        else:
            speeds['moreThan1week'] += 1
    return speeds


def monthly_volume(products, since):
    """ Count and total quantity per creation month, for products created at or after `since`. """
    since = _as_utc(since).replace(tzinfo=None)
    months = OrderedDict()
    for product in products:
        if _as_utc(product.created_at).replace(tzinfo=None) < since:
            continue
        key = month_key(product.created_at)
        if key not in months:
            months[key] = {'month': key, 'count': 0, 'quantity': 0}
        months[key]['count'] += 1
        months[key]['quantity'] += product.quantity or 0
    return [months[k] for k in sorted(months)]


def build_supplier_metrics(products, now):
    products = list(products)
    return {
        'statusBreakdown': fixed_breakdown((p.status for p in products), PRODUCT_STATUSES),
        'claimSpeeds': claim_speed_buckets(products),
        'monthlyTimeline': monthly_volume(products, months_before(now, 6)),
        'typeBreakdown': count_categories(p.product_type for p in products),
        'totalProducts': len(products),
    }


# ==========================================
#  8. NONPROFIT METRICS
# ==========================================
def upcoming_pickups(products, now, days=30):
    start = _as_utc(now).replace(tzinfo=None)
    end = start + timedelta(days=days)
    pickups = []
    for product in products:
        if not product.pickup_info:
            continue
        pickup_date = _as_utc(product.pickup_info.pickup_date).replace(tzinfo=None)
        if start <= pickup_date <= end:
            pickups.append({
                'id': product.id,
                'name': product.name,
                'pickupDate': product.pickup_info.pickup_date.isoformat(),
            })
    return pickups


def match_score(interests, available_types):
    """
    For each category the survey marks as an interest: the share (in %) of
    currently available products carrying that category.
    """
    score = {wire: 0 for wire, _ in CATEGORY_FIELDS}
    available_types = list(available_types)
    if interests is None or not available_types:
        return score

    counts = count_categories(available_types)
    for wire, attr in CATEGORY_FIELDS:
        if getattr(interests, attr, False):
            score[wire] = counts[wire] / len(available_types) * 100
    return score


def daily_counts(timestamps):
    counts = count_by_key(timestamps, day_key)
    return [{'date': date, 'count': count} for date, count in sorted(counts.items())]


def build_nonprofit_metrics(claimed_products, interests, available_types, recent_available_times, now):
    claimed_products = list(claimed_products)
    return {
        'monthlyTimeline': aggregate_claims_timeline(p.created_at for p in claimed_products),
        'typeBreakdown': count_categories(p.product_type for p in claimed_products),
        'upcomingPickups': upcoming_pickups(claimed_products, now),
        'matchScore': match_score(interests, available_types),
        'availabilityTrends': daily_counts(recent_available_times),
        'totalClaimed': len(claimed_products),
    }
