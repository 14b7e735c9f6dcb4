"""Sample records loaded into an empty store."""

from expediter.aggregates import calculate_progress, proposal_total

SAMPLE_CLIENTS = [
    {
        'id': '1',
        'name': 'Bank of America',
        'contact_person': 'John Smith',
        'email': 'john.smith@bankofamerica.com',
        'phone': '(123) 456-7890',
        'address': '123 Main St',
        'city': 'Atlanta',
        'state': 'GA',
        'zip_code': '30303',
        'notes': 'Major national client with multiple locations',
        'created_at': '2023-01-15',
    },
    {
        'id': '2',
        'name': 'Wells Fargo',
        'contact_person': 'Sarah Johnson',
        'email': 'sarah.j@wellsfargo.com',
        'phone': '(234) 567-8901',
        'address': '456 Oak St',
        'city': 'Miami',
        'state': 'FL',
        'zip_code': '33101',
        'notes': '',
        'created_at': '2023-03-22',
    },
    {
        'id': '3',
        'name': 'First National Bank',
        'contact_person': 'Michael Brown',
        'email': 'mbrown@fnb.com',
        'phone': '(345) 678-9012',
        'address': '789 Pine St',
        'city': 'Tampa',
        'state': 'FL',
        'zip_code': '33602',
        'notes': 'Regional bank with 25 locations',
        'created_at': '2023-05-10',
    },
]

SAMPLE_BRANCHES = [
    {
        'id': '1', 'client_id': '1', 'name': 'Atlanta Headquarters',
        'address': '123 Main St', 'city': 'Atlanta', 'state': 'GA', 'zip_code': '30303',
        'contact_person': 'John Smith', 'phone': '(123) 456-7890', 'email': '',
        'is_main_location': True, 'created_at': '2023-01-15',
    },
    {
        'id': '2', 'client_id': '1', 'name': 'Ormond Beach',
        'address': '88 Granada Blvd', 'city': 'Ormond Beach', 'state': 'FL', 'zip_code': '32174',
        'contact_person': '', 'phone': '', 'email': '',
        'is_main_location': False, 'created_at': '2023-08-21',
    },
    {
        'id': '3', 'client_id': '2', 'name': 'Miami Main',
        'address': '456 Oak St', 'city': 'Miami', 'state': 'FL', 'zip_code': '33101',
        'contact_person': 'Sarah Johnson', 'phone': '', 'email': '',
        'is_main_location': True, 'created_at': '2023-03-22',
    },
    {
        'id': '4', 'client_id': '3', 'name': 'Tampa Headquarters',
        'address': '789 Pine St', 'city': 'Tampa', 'state': 'FL', 'zip_code': '33602',
        'contact_person': 'Michael Brown', 'phone': '', 'email': '',
        'is_main_location': True, 'created_at': '2023-05-10',
    },
]

SAMPLE_PERMITS = [
    {
        'id': '1',
        'title': 'Mall of Georgia Renovations',
        'client_id': '1',
        'permit_type': 'Renovation',
        'status': 'in-progress',
        'location': 'Mall of Georgia, Buford, GA',
        'description': 'Interior redesign and exterior facade updates.',
        'assigned_to': 'John Smith',
        'created_at': '2023-07-30',
        'expires_at': '2024-07-30',
        'permit_number': '23-001',
    },
    {
        'id': '2',
        'title': 'Ormond Beach Bollards',
        'client_id': '1',
        'permit_type': 'Construction',
        'status': 'submitted',
        'location': 'Ormond Beach, FL',
        'description': 'Installation of security bollards.',
        'assigned_to': 'Mike Johnson',
        'created_at': '2023-08-21',
        'expires_at': '2024-08-21',
        'permit_number': '23-002',
    },
    {
        'id': '3',
        'title': 'Parking Lot Resurfacing',
        'client_id': '3',
        'permit_type': 'Construction',
        'status': 'approved',
        'location': 'First National Bank, Tampa, FL',
        'description': 'Resurfacing of the headquarters parking lot.',
        'assigned_to': 'Sarah Parker',
        'created_at': '2023-09-15',
        'expires_at': '2024-09-15',
        'permit_number': '23-003',
    },
]

_CHECKLIST = [
    # (permit_id, title, completed, price, notes)
    ('1', 'Application form completed', True, 150.0, ''),
    ('1', 'Payment processed', True, 500.0, ''),
    ('1', 'Site plans submitted', True, 750.0, ''),
    ('1', 'Environmental review passed', False, 400.0, 'Waiting for inspector report'),
    ('1', 'Zoning compliance checked', False, None, ''),
    ('1', 'Final approval', False, 250.0, ''),
    ('2', 'Application form completed', True, 150.0, ''),
    ('2', 'Payment processed', True, 300.0, ''),
    ('2', 'Site plans submitted', False, 600.0, ''),
    ('2', 'Safety review', False, 200.0, ''),
    ('3', 'Application form completed', True, 150.0, ''),
    ('3', 'Final inspection', True, 350.0, ''),
]

SAMPLE_CHECKLIST_ITEMS = [
    {
        'id': str(n),
        'permit_id': permit_id,
        'title': title,
        'completed': completed,
        'price': price,
        'notes': notes,
        'created_at': '2023-09-20',
    }
    for n, (permit_id, title, completed, price, notes) in enumerate(_CHECKLIST, start=1)
]

SAMPLE_TEMPLATES = [
    {
        'id': '1',
        'name': 'Standard Commercial Permit',
        'description': 'Typical steps for a commercial building permit.',
        'permit_type': 'Commercial',
        'items': [
            {'id': '1', 'title': 'Application form completed', 'price': 150.0, 'order': 1},
            {'id': '2', 'title': 'Site plans submitted', 'price': 750.0, 'order': 2},
            {'id': '3', 'title': 'Zoning compliance checked', 'price': 300.0, 'order': 3},
            {'id': '4', 'title': 'Final approval', 'price': 250.0, 'order': 4},
        ],
        'created_at': '2023-06-01',
    },
    {
        'id': '2',
        'name': 'Sign Permit',
        'description': 'Exterior signage.',
        'permit_type': 'Sign',
        'items': [
            {'id': '1', 'title': 'Sign drawings prepared', 'price': 200.0, 'order': 1},
            {'id': '2', 'title': 'Landlord approval letter', 'price': None, 'order': 2},
            {'id': '3', 'title': 'Permit issued', 'price': 100.0, 'order': 3},
        ],
        'created_at': '2023-06-01',
    },
]

_PROPOSAL_ITEMS = [
    {'id': '1', 'description': 'Permit application preparation', 'quantity': 1, 'unit_price': 450.0},
    {'id': '2', 'description': 'Site visits', 'quantity': 3, 'unit_price': 125.0},
]

SAMPLE_PROPOSALS = [
    {
        'id': 'PROP-000001',
        'number': '23-001',
        'title': 'Drive-thru ATM Installation',
        'client_id': '2',
        'permit_id': None,
        'status': 'sent',
        'date': '2023-10-02',
        'valid_until': '2023-11-01',
        'scope': 'Permit expediting for a new drive-thru ATM at the Miami branch.',
        'terms': 'Payment Terms: 50% deposit required to begin work, with remaining '
                 'balance due upon completion.',
        'items': [dict(i, total=i['quantity'] * i['unit_price']) for i in _PROPOSAL_ITEMS],
        'total_amount': proposal_total(_PROPOSAL_ITEMS),
        'notes': '',
        'created_at': '2023-10-02T09:00:00',
    },
]


def seed_collections() -> dict:
    """Fresh copies of every sample collection, keyed by storage key."""
    permits = []
    for permit in SAMPLE_PERMITS:
        items = [i for i in SAMPLE_CHECKLIST_ITEMS if i['permit_id'] == permit['id']]
        permits.append(dict(permit, progress=calculate_progress(items)))
    return {
        'clients': [dict(c) for c in SAMPLE_CLIENTS],
        'clientBranches': [dict(b) for b in SAMPLE_BRANCHES],
        'permits': permits,
        'checklistItems': [dict(i) for i in SAMPLE_CHECKLIST_ITEMS],
        'checklistTemplates': [
            dict(t, items=[dict(i) for i in t['items']]) for t in SAMPLE_TEMPLATES
        ],
        'proposals': [
            dict(p, items=[dict(i) for i in p['items']]) for p in SAMPLE_PROPOSALS
        ],
    }
