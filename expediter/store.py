# expediter/store.py
"""The domain store: every collection of the back office plus derived queries.

Each collection is kept in memory as a list of dicts and written whole to the
key-value backend after every mutation, so the backend always holds the
latest copy of every collection under its storage key.
"""

from __future__ import annotations

import copy
import logging
import math
import threading
import uuid
from datetime import datetime, timedelta

from flask import current_app

from expediter.aggregates import (
    calculate_progress,
    invoice_summary,
    proposal_item_total,
    proposal_total,
    round_half_up,
)
from expediter.errors import ConstraintViolation, ExpediterError, NotFoundError, ValidationError
from expediter.seed import seed_collections

log = logging.getLogger(__name__)

CLIENTS = 'clients'
BRANCHES = 'clientBranches'
PERMITS = 'permits'
CHECKLIST_ITEMS = 'checklistItems'
TEMPLATES = 'checklistTemplates'
PROPOSALS = 'proposals'
COLLECTIONS = (CLIENTS, BRANCHES, PERMITS, CHECKLIST_ITEMS, TEMPLATES, PROPOSALS)

NEXT_PERMIT_NUMBER = 'nextPermitNumber'

PERMIT_STATUSES = ('draft', 'submitted', 'in-progress', 'approved', 'expired')
PROPOSAL_STATUSES = ('draft', 'sent', 'accepted', 'declined')
OPEN_PROPOSAL_STATUSES = ('draft', 'sent')

DEFAULT_PERMIT_TYPE = 'Commercial'
PROPOSAL_VALIDITY_DAYS = 30
DEFAULT_PROPOSAL_SCOPE = (
    'This proposal outlines permit expediting services to be provided by {company}.'
)
DEFAULT_PROPOSAL_TERMS = (
    'Payment Terms: 50% deposit required to begin work, with remaining balance due '
    'upon completion.\n\n'
    'Cancellation Policy: Cancellations must be made in writing. Deposit is '
    'non-refundable if work has commenced.'
)

CLIENT_FIELDS = ('name', 'contact_person', 'email', 'phone', 'address', 'city',
                 'state', 'zip_code', 'notes')
BRANCH_FIELDS = ('name', 'address', 'city', 'state', 'zip_code', 'contact_person',
                 'phone', 'email', 'is_main_location')
PERMIT_FIELDS = ('title', 'client_id', 'permit_type', 'status', 'location',
                 'description', 'assigned_to', 'expires_at')
CHECKLIST_FIELDS = ('title', 'completed', 'price', 'notes')
TEMPLATE_FIELDS = ('name', 'description', 'permit_type', 'items')
PROPOSAL_FIELDS = ('title', 'client_id', 'permit_id', 'status', 'date', 'valid_until',
                   'scope', 'terms', 'items', 'notes')


def generate_id() -> str:
    return uuid.uuid4().hex[:12]


def _pick(data: dict, fields) -> dict:
    return {k: data[k] for k in fields if k in data}


def _required(data: dict, field: str, label: str | None = None) -> str:
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label or field.replace('_', ' ').capitalize()} is required",
                              field=field)
    return value.strip() if isinstance(value, str) else value


def _to_price(value, field: str = 'price'):
    if value is None or value == '':
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", field=field)
    if not math.isfinite(price):
        raise ValidationError(f"{field} must be a finite number", field=field)
    if price < 0:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return price


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _to_quantity(value) -> float:
    try:
        qty = float(value if value not in (None, '') else 1)
    except (TypeError, ValueError):
        raise ValidationError("quantity must be a number", field='quantity')
    if not math.isfinite(qty):
        raise ValidationError("quantity must be a finite number", field='quantity')
    if qty < 0:
        raise ValidationError("quantity cannot be negative", field='quantity')
    return int(qty) if qty.is_integer() else qty


class DomainStore:
    """Single source of truth for clients, permits, checklists and proposals.

    ``kv`` is a key-value backend (see :mod:`expediter.storage`) and
    ``counters`` a counter store used for permit and proposal numbers.
    ``clock`` returns the current ``datetime`` and is swapped out in tests.
    """

    def __init__(self, kv, counters, seed: bool = True, clock=None,
                 company_name: str = 'IRH Smart LLC') -> None:
        self.kv = kv
        self.counters = counters
        self.seed = seed
        self.clock = clock or datetime.now
        self.company_name = company_name
        self._lock = threading.RLock()
        self._data: dict[str, list] = {name: [] for name in COLLECTIONS}

    # ------------------------------------------------------------------
    # persistence

    def load(self) -> None:
        """Read every collection, initialising absent keys from seed data."""
        with self._lock:
            seeds = seed_collections() if self.seed else {}
            missing = {}
            for name in COLLECTIONS:
                value = self.kv.get(name)
                if value is None:
                    value = seeds.get(name, [])
                    missing[name] = value
                self._data[name] = value
            if missing:
                self.kv.set_many(missing)
                log.info("Initialised store keys %s", ", ".join(sorted(missing)))

    def reset(self, seed: bool = True) -> None:
        with self._lock:
            seeds = seed_collections() if seed else {}
            self._data = {name: seeds.get(name, []) for name in COLLECTIONS}
            self._save(*COLLECTIONS)
            log.info("Store reset (seed=%s)", seed)

    def export(self) -> dict:
        with self._lock:
            return copy.deepcopy(self._data)

    def _save(self, *names: str) -> None:
        self.kv.set_many({name: self._data[name] for name in names})

    def _now(self) -> str:
        return self.clock().isoformat(timespec='seconds')

    def _today(self) -> str:
        return self.clock().date().isoformat()

    def _find(self, name: str, record_id):
        for record in self._data[name]:
            if record['id'] == record_id:
                return record
        return None

    def _require(self, name: str, record_id, label: str) -> dict:
        record = self._find(name, record_id)
        if record is None:
            raise NotFoundError(f"{label} {record_id} not found")
        return record

    # ------------------------------------------------------------------
    # numbering

    def _next_number(self, counter: str, used: set) -> str:
        yy = self.clock().strftime('%y')
        while True:
            seq = self.counters.increment(counter, yy)
            number = f"{yy}-{seq:03d}"
            if number not in used:
                return number
            log.warning("Skipping %s number %s, already in use", counter, number)

    def generate_permit_number(self) -> str:
        with self._lock:
            used = {p.get('permit_number') for p in self._data[PERMITS]}
            number = self._next_number('permit', used)
            self.kv.set(NEXT_PERMIT_NUMBER, self.peek_permit_number())
            return number

    def peek_permit_number(self) -> str:
        yy = self.clock().strftime('%y')
        return f"{yy}-{self.counters.peek('permit', yy):03d}"

    def generate_proposal_number(self) -> str:
        with self._lock:
            used = {p.get('number') for p in self._data[PROPOSALS]}
            return self._next_number('proposal', used)

    # ------------------------------------------------------------------
    # clients

    def list_clients(self) -> list[dict]:
        return copy.deepcopy(sorted(self._data[CLIENTS], key=lambda c: c['name'].lower()))

    def get_client(self, client_id) -> dict | None:
        return copy.deepcopy(self._find(CLIENTS, client_id))

    def add_client(self, data: dict) -> str:
        fields = _pick(data, CLIENT_FIELDS)
        fields['name'] = _required(fields, 'name')
        fields['email'] = _required(fields, 'email')
        client = {k: '' for k in CLIENT_FIELDS}
        client.update(fields)
        client.update(id=generate_id(), created_at=self._today())
        with self._lock:
            self._data[CLIENTS].append(client)
            self._save(CLIENTS)
        log.info("Added client %s (%s)", client['id'], client['name'])
        return client['id']

    def update_client(self, client_id, data: dict) -> dict | None:
        fields = _pick(data, CLIENT_FIELDS)
        for field in ('name', 'email'):
            if field in fields:
                fields[field] = _required(fields, field)
        with self._lock:
            client = self._find(CLIENTS, client_id)
            if client is None:
                return None
            client.update(fields)
            self._save(CLIENTS)
            return copy.deepcopy(client)

    def delete_client(self, client_id) -> None:
        with self._lock:
            if self._find(CLIENTS, client_id) is None:
                raise NotFoundError(f"Client {client_id} not found")
            if any(p['client_id'] == client_id for p in self._data[PERMITS]):
                raise ConstraintViolation("Cannot delete client with associated permits")
            self._data[CLIENTS] = [c for c in self._data[CLIENTS] if c['id'] != client_id]
            self._data[BRANCHES] = [b for b in self._data[BRANCHES]
                                    if b['client_id'] != client_id]
            self._data[PROPOSALS] = [p for p in self._data[PROPOSALS]
                                     if p['client_id'] != client_id]
            self._save(CLIENTS, BRANCHES, PROPOSALS)
        log.info("Deleted client %s", client_id)

    def get_client_permits(self, client_id) -> list[dict]:
        return copy.deepcopy([p for p in self._data[PERMITS] if p['client_id'] == client_id])

    def get_client_proposals(self, client_id) -> list[dict]:
        return copy.deepcopy([p for p in self._data[PROPOSALS] if p['client_id'] == client_id])

    # ------------------------------------------------------------------
    # branches

    def get_client_branches(self, client_id) -> list[dict]:
        branches = [b for b in self._data[BRANCHES] if b['client_id'] == client_id]
        branches.sort(key=lambda b: (not b['is_main_location'], b['created_at']))
        return copy.deepcopy(branches)

    def get_branch(self, branch_id) -> dict | None:
        return copy.deepcopy(self._find(BRANCHES, branch_id))

    def _set_main_branch(self, branch: dict) -> None:
        for other in self._data[BRANCHES]:
            if other['client_id'] == branch['client_id']:
                other['is_main_location'] = other['id'] == branch['id']

    def add_branch(self, client_id, data: dict) -> str:
        fields = _pick(data, BRANCH_FIELDS)
        fields['name'] = _required(fields, 'name')
        with self._lock:
            self._require(CLIENTS, client_id, 'Client')
            siblings = [b for b in self._data[BRANCHES] if b['client_id'] == client_id]
            branch = {k: '' for k in BRANCH_FIELDS}
            branch.update(fields)
            branch.update(
                id=generate_id(),
                client_id=client_id,
                is_main_location=_to_bool(fields.get('is_main_location')) or not siblings,
                created_at=self._now(),
            )
            self._data[BRANCHES].append(branch)
            if branch['is_main_location']:
                self._set_main_branch(branch)
            self._save(BRANCHES)
            return branch['id']

    def update_branch(self, branch_id, data: dict) -> dict | None:
        fields = _pick(data, BRANCH_FIELDS)
        if 'name' in fields:
            fields['name'] = _required(fields, 'name')
        with self._lock:
            branch = self._find(BRANCHES, branch_id)
            if branch is None:
                return None
            make_main = fields.pop('is_main_location', None)
            if make_main is not None:
                make_main = _to_bool(make_main)
            if make_main is False and branch['is_main_location']:
                raise ConstraintViolation(
                    "A client must keep one main location; mark another branch as main instead")
            branch.update(fields)
            if make_main:
                self._set_main_branch(branch)
            self._save(BRANCHES)
            return copy.deepcopy(branch)

    def delete_branch(self, branch_id) -> None:
        with self._lock:
            branch = self._require(BRANCHES, branch_id, 'Branch')
            siblings = [b for b in self._data[BRANCHES]
                        if b['client_id'] == branch['client_id'] and b['id'] != branch_id]
            if branch['is_main_location'] and not siblings:
                raise ConstraintViolation("Cannot delete the only main location of a client")
            self._data[BRANCHES] = [b for b in self._data[BRANCHES] if b['id'] != branch_id]
            if branch['is_main_location']:
                successor = min(siblings, key=lambda b: b['created_at'])
                self._set_main_branch(successor)
            self._save(BRANCHES)

    # ------------------------------------------------------------------
    # permits

    def list_permits(self, status: str | None = None, client_id=None) -> list[dict]:
        permits = self._data[PERMITS]
        if status:
            permits = [p for p in permits if p['status'] == status]
        if client_id:
            permits = [p for p in permits if p['client_id'] == client_id]
        return copy.deepcopy(sorted(permits, key=lambda p: p['created_at'], reverse=True))

    def get_permit(self, permit_id) -> dict | None:
        return copy.deepcopy(self._find(PERMITS, permit_id))

    def get_permit_client(self, permit_id) -> dict | None:
        permit = self._find(PERMITS, permit_id)
        if permit is None:
            return None
        return self.get_client(permit['client_id'])

    def _check_permit_fields(self, fields: dict) -> None:
        if 'title' in fields:
            fields['title'] = _required(fields, 'title')
        if 'client_id' in fields and self._find(CLIENTS, fields['client_id']) is None:
            raise ValidationError("Unknown client", field='client_id')
        if 'status' in fields and fields['status'] not in PERMIT_STATUSES:
            raise ValidationError(f"Invalid permit status: {fields['status']}", field='status')

    def add_permit(self, data: dict) -> str:
        fields = _pick(data, PERMIT_FIELDS)
        _required(fields, 'title')
        _required(fields, 'client_id', 'Client')
        with self._lock:
            self._check_permit_fields(fields)
            permit = {
                'title': '', 'client_id': None, 'permit_type': DEFAULT_PERMIT_TYPE,
                'status': 'draft', 'location': '', 'description': '',
                'assigned_to': '', 'expires_at': None,
            }
            permit.update(fields)
            permit.update(
                id=generate_id(),
                progress=0,
                permit_number=self.generate_permit_number(),
                created_at=self._now(),
            )
            self._data[PERMITS].append(permit)
            self._save(PERMITS)
        log.info("Added permit %s (%s)", permit['id'], permit['permit_number'])
        return permit['id']

    def update_permit(self, permit_id, data: dict) -> dict | None:
        fields = _pick(data, PERMIT_FIELDS)
        with self._lock:
            permit = self._find(PERMITS, permit_id)
            if permit is None:
                return None
            self._check_permit_fields(fields)
            permit.update(fields)
            self._save(PERMITS)
            return copy.deepcopy(permit)

    def delete_permit(self, permit_id) -> None:
        with self._lock:
            self._require(PERMITS, permit_id, 'Permit')
            self._data[PERMITS] = [p for p in self._data[PERMITS] if p['id'] != permit_id]
            self._data[CHECKLIST_ITEMS] = [i for i in self._data[CHECKLIST_ITEMS]
                                           if i['permit_id'] != permit_id]
            for proposal in self._data[PROPOSALS]:
                if proposal.get('permit_id') == permit_id:
                    proposal['permit_id'] = None
            self._save(PERMITS, CHECKLIST_ITEMS, PROPOSALS)
        log.info("Deleted permit %s and its checklist", permit_id)

    # ------------------------------------------------------------------
    # checklist items

    def get_permit_checklist_items(self, permit_id) -> list[dict]:
        return copy.deepcopy([i for i in self._data[CHECKLIST_ITEMS]
                              if i['permit_id'] == permit_id])

    def get_checklist_progress(self, permit_id) -> int:
        return calculate_progress(i for i in self._data[CHECKLIST_ITEMS]
                                  if i['permit_id'] == permit_id)

    def _recompute_progress(self, permit_id) -> None:
        permit = self._find(PERMITS, permit_id)
        if permit is not None:
            permit['progress'] = self.get_checklist_progress(permit_id)

    def _new_checklist_item(self, permit_id, fields: dict) -> dict:
        item = {
            'id': generate_id(),
            'permit_id': permit_id,
            'title': _required(fields, 'title'),
            'completed': _to_bool(fields.get('completed', False)),
            'price': _to_price(fields.get('price')),
            'notes': fields.get('notes') or '',
            'created_at': self._now(),
        }
        return item

    def add_checklist_item(self, permit_id, data: dict) -> str:
        with self._lock:
            self._require(PERMITS, permit_id, 'Permit')
            item = self._new_checklist_item(permit_id, _pick(data, CHECKLIST_FIELDS))
            self._data[CHECKLIST_ITEMS].append(item)
            self._recompute_progress(permit_id)
            self._save(CHECKLIST_ITEMS, PERMITS)
            return item['id']

    def update_checklist_item(self, item_id, data: dict) -> dict | None:
        fields = _pick(data, CHECKLIST_FIELDS)
        if 'title' in fields:
            fields['title'] = _required(fields, 'title')
        if 'price' in fields:
            fields['price'] = _to_price(fields['price'])
        if 'completed' in fields:
            fields['completed'] = _to_bool(fields['completed'])
        with self._lock:
            item = self._find(CHECKLIST_ITEMS, item_id)
            if item is None:
                return None
            item.update(fields)
            self._recompute_progress(item['permit_id'])
            self._save(CHECKLIST_ITEMS, PERMITS)
            return copy.deepcopy(item)

    def delete_checklist_item(self, item_id) -> None:
        with self._lock:
            item = self._find(CHECKLIST_ITEMS, item_id)
            if item is None:
                return
            self._data[CHECKLIST_ITEMS] = [i for i in self._data[CHECKLIST_ITEMS]
                                           if i['id'] != item_id]
            self._recompute_progress(item['permit_id'])
            self._save(CHECKLIST_ITEMS, PERMITS)

    def get_permit_costs(self, permit_id) -> dict:
        return invoice_summary(i for i in self._data[CHECKLIST_ITEMS]
                               if i['permit_id'] == permit_id)

    # ------------------------------------------------------------------
    # checklist templates

    def list_templates(self, permit_type: str | None = None) -> list[dict]:
        templates = self._data[TEMPLATES]
        if permit_type:
            templates = [t for t in templates if t['permit_type'] == permit_type]
        return copy.deepcopy(sorted(templates, key=lambda t: t['name'].lower()))

    def get_template(self, template_id) -> dict | None:
        return copy.deepcopy(self._find(TEMPLATES, template_id))

    @staticmethod
    def _template_items(raw_items) -> list[dict]:
        if not raw_items:
            raise ValidationError("A template needs at least one item", field='items')
        items = []
        for position, raw in enumerate(raw_items, start=1):
            items.append({
                'id': raw.get('id') or generate_id(),
                'title': _required(raw, 'title'),
                'price': _to_price(raw.get('price')),
                'order': int(raw.get('order') or position),
            })
        items.sort(key=lambda i: i['order'])
        return items

    def add_template(self, data: dict) -> str:
        fields = _pick(data, TEMPLATE_FIELDS)
        template = {
            'id': generate_id(),
            'name': _required(fields, 'name'),
            'description': fields.get('description') or '',
            'permit_type': fields.get('permit_type') or DEFAULT_PERMIT_TYPE,
            'items': self._template_items(fields.get('items')),
            'created_at': self._now(),
        }
        with self._lock:
            self._data[TEMPLATES].append(template)
            self._save(TEMPLATES)
        return template['id']

    def update_template(self, template_id, data: dict) -> dict | None:
        fields = _pick(data, TEMPLATE_FIELDS)
        if 'name' in fields:
            fields['name'] = _required(fields, 'name')
        if 'items' in fields:
            fields['items'] = self._template_items(fields['items'])
        with self._lock:
            template = self._find(TEMPLATES, template_id)
            if template is None:
                return None
            template.update(fields)
            self._save(TEMPLATES)
            return copy.deepcopy(template)

    def delete_template(self, template_id) -> None:
        with self._lock:
            self._require(TEMPLATES, template_id, 'Template')
            self._data[TEMPLATES] = [t for t in self._data[TEMPLATES] if t['id'] != template_id]
            self._save(TEMPLATES)

    def apply_template_to_permit(self, template_id, permit_id) -> list[str]:
        """Copy every template item into the permit's checklist."""
        with self._lock:
            template = self._require(TEMPLATES, template_id, 'Template')
            self._require(PERMITS, permit_id, 'Permit')
            new_ids = []
            for t_item in sorted(template['items'], key=lambda i: i['order']):
                item = self._new_checklist_item(
                    permit_id, {'title': t_item['title'], 'price': t_item.get('price')})
                self._data[CHECKLIST_ITEMS].append(item)
                new_ids.append(item['id'])
            self._recompute_progress(permit_id)
            self._save(CHECKLIST_ITEMS, PERMITS)
        log.info("Applied template %s to permit %s (%d items)",
                 template_id, permit_id, len(new_ids))
        return new_ids

    # ------------------------------------------------------------------
    # proposals

    def list_proposals(self, status: str | None = None, client_id=None,
                       search: str | None = None) -> list[dict]:
        """Newest first; ``search`` matches title or id, case-insensitively."""
        proposals = self._data[PROPOSALS]
        if search and search.strip():
            needle = search.strip().lower()
            proposals = [p for p in proposals
                         if needle in p['title'].lower() or needle in p['id'].lower()]
        if status:
            proposals = [p for p in proposals if p['status'] == status]
        if client_id:
            proposals = [p for p in proposals if p['client_id'] == client_id]
        return copy.deepcopy(sorted(proposals, key=lambda p: p['created_at'], reverse=True))

    def get_proposal(self, proposal_id) -> dict | None:
        return copy.deepcopy(self._find(PROPOSALS, proposal_id))

    @staticmethod
    def _proposal_item(raw: dict, existing: dict | None = None) -> dict:
        item = dict(existing or {'id': generate_id(), 'description': '',
                                 'quantity': 1, 'unit_price': 0.0})
        if existing is None or 'description' in raw:
            item['description'] = _required(raw, 'description')
        if 'quantity' in raw or existing is None:
            item['quantity'] = _to_quantity(raw.get('quantity'))
        if 'unit_price' in raw or existing is None:
            item['unit_price'] = _to_price(raw.get('unit_price'), 'unit_price') or 0.0
        item['total'] = proposal_item_total(item)
        return item

    @staticmethod
    def _retotal(proposal: dict) -> None:
        proposal['total_amount'] = proposal_total(proposal['items'])

    def _check_proposal_fields(self, fields: dict) -> None:
        if 'client_id' in fields and self._find(CLIENTS, fields['client_id']) is None:
            raise ValidationError("Unknown client", field='client_id')
        if fields.get('permit_id') and self._find(PERMITS, fields['permit_id']) is None:
            raise ValidationError("Unknown permit", field='permit_id')
        if 'status' in fields and fields['status'] not in PROPOSAL_STATUSES:
            raise ValidationError(f"Invalid proposal status: {fields['status']}",
                                  field='status')

    def add_proposal(self, data: dict) -> str:
        fields = _pick(data, PROPOSAL_FIELDS)
        _required(fields, 'client_id', 'Client')
        with self._lock:
            self._check_proposal_fields(fields)
            now = self.clock()
            number = self.generate_proposal_number()
            proposal = {
                'id': f"PROP-{generate_id()}",
                'number': number,
                'title': fields.get('title') or number,
                'client_id': fields['client_id'],
                'permit_id': fields.get('permit_id') or None,
                'status': fields.get('status') or 'draft',
                'date': fields.get('date') or now.date().isoformat(),
                'valid_until': fields.get('valid_until') or
                (now + timedelta(days=PROPOSAL_VALIDITY_DAYS)).date().isoformat(),
                'scope': fields.get('scope') or
                DEFAULT_PROPOSAL_SCOPE.format(company=self.company_name),
                'terms': fields.get('terms') or DEFAULT_PROPOSAL_TERMS,
                'items': [self._proposal_item(i) for i in fields.get('items') or []],
                'notes': fields.get('notes') or '',
                'created_at': now.isoformat(timespec='seconds'),
            }
            self._retotal(proposal)
            self._data[PROPOSALS].append(proposal)
            self._save(PROPOSALS)
        log.info("Added proposal %s (%s)", proposal['id'], proposal['number'])
        if proposal['status'] == 'accepted':
            self.convert_proposal_to_permit(proposal['id'])
        return proposal['id']

    def update_proposal(self, proposal_id, data: dict) -> dict | None:
        """Merge ``data`` into a proposal.

        Accepting a proposal without a permit converts it; when the
        conversion fails the proposal is left exactly as it was.
        """
        fields = _pick(data, PROPOSAL_FIELDS)
        if 'title' in fields:
            fields['title'] = _required(fields, 'title')
        with self._lock:
            proposal = self._find(PROPOSALS, proposal_id)
            if proposal is None:
                return None
            self._check_proposal_fields(fields)
            if 'items' in fields:
                fields['items'] = [self._proposal_item(i) for i in fields['items'] or []]
            before = copy.deepcopy(proposal)
            proposal.update(fields)
            self._retotal(proposal)
            if proposal['status'] == 'accepted' and not proposal.get('permit_id'):
                try:
                    self.convert_proposal_to_permit(proposal_id)
                except ExpediterError:
                    proposal.clear()
                    proposal.update(before)
                    raise
            self._save(PROPOSALS)
            return copy.deepcopy(proposal)

    def delete_proposal(self, proposal_id) -> None:
        with self._lock:
            self._require(PROPOSALS, proposal_id, 'Proposal')
            self._data[PROPOSALS] = [p for p in self._data[PROPOSALS] if p['id'] != proposal_id]
            self._save(PROPOSALS)

    def add_proposal_item(self, proposal_id, data: dict) -> str:
        with self._lock:
            proposal = self._require(PROPOSALS, proposal_id, 'Proposal')
            item = self._proposal_item(data)
            proposal['items'].append(item)
            self._retotal(proposal)
            self._save(PROPOSALS)
            return item['id']

    def update_proposal_item(self, proposal_id, item_id, data: dict) -> dict:
        with self._lock:
            proposal = self._require(PROPOSALS, proposal_id, 'Proposal')
            for index, item in enumerate(proposal['items']):
                if item['id'] == item_id:
                    proposal['items'][index] = self._proposal_item(data, existing=item)
                    break
            else:
                raise NotFoundError(f"Proposal item {item_id} not found")
            self._retotal(proposal)
            self._save(PROPOSALS)
            return copy.deepcopy(proposal)

    def remove_proposal_item(self, proposal_id, item_id) -> dict:
        with self._lock:
            proposal = self._require(PROPOSALS, proposal_id, 'Proposal')
            proposal['items'] = [i for i in proposal['items'] if i['id'] != item_id]
            self._retotal(proposal)
            self._save(PROPOSALS)
            return copy.deepcopy(proposal)

    def reorder_proposal_items(self, proposal_id, item_ids: list) -> dict:
        with self._lock:
            proposal = self._require(PROPOSALS, proposal_id, 'Proposal')
            by_id = {i['id']: i for i in proposal['items']}
            if sorted(item_ids) != sorted(by_id):
                raise ValidationError("Item order must list every item exactly once",
                                      field='item_ids')
            proposal['items'] = [by_id[i] for i in item_ids]
            self._retotal(proposal)
            self._save(PROPOSALS)
            return copy.deepcopy(proposal)

    def convert_proposal_to_permit(self, proposal_id) -> str | None:
        """Create a permit and checklist from an accepted proposal.

        Returns None when the proposal is missing or not accepted, and the
        already linked permit id when it was converted before.
        """
        with self._lock:
            proposal = self._find(PROPOSALS, proposal_id)
            if proposal is None or proposal['status'] != 'accepted':
                return None
            if proposal.get('permit_id') and self._find(PERMITS, proposal['permit_id']):
                return proposal['permit_id']

            permit_id = self.add_permit({
                'title': proposal['title'],
                'client_id': proposal['client_id'],
                'permit_type': DEFAULT_PERMIT_TYPE,
                'status': 'draft',
                'location': '',
                'description': proposal['scope'],
            })
            for p_item in proposal['items']:
                item = self._new_checklist_item(permit_id, {
                    'title': p_item['description'],
                    'price': proposal_item_total(p_item),
                })
                self._data[CHECKLIST_ITEMS].append(item)
            self._recompute_progress(permit_id)

            permit = self._find(PERMITS, permit_id)
            note = f"Converted to permit {permit['permit_number']} on {self._now()}"
            proposal['permit_id'] = permit_id
            proposal['notes'] = f"{proposal['notes']}\n{note}" if proposal.get('notes') else note
            self._save(CHECKLIST_ITEMS, PERMITS, PROPOSALS)
        log.info("Converted proposal %s to permit %s", proposal_id, permit_id)
        return permit_id

    # ------------------------------------------------------------------
    # dashboard

    def dashboard_summary(self) -> dict:
        permits = self._data[PERMITS]
        proposals = self._data[PROPOSALS]
        by_status = {status: 0 for status in PERMIT_STATUSES}
        for permit in permits:
            by_status[permit['status']] = by_status.get(permit['status'], 0) + 1
        active = [p for p in permits if p['status'] in ('submitted', 'in-progress')]
        return {
            'clients': len(self._data[CLIENTS]),
            'permits': len(permits),
            'proposals': len(proposals),
            'permits_by_status': by_status,
            'active_permits': len(active),
            'average_progress': round_half_up(sum(p['progress'] for p in permits) / len(permits))
            if permits else 0,
            'pipeline_value': sum(p['total_amount'] for p in proposals
                                  if p['status'] in OPEN_PROPOSAL_STATUSES),
        }


def current_store() -> DomainStore:
    return current_app.extensions['domain_store']
