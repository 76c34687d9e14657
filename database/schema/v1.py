"""Schema v1 - Initial database schema.

This version includes tables for:
- Users authenticated through an external provider
- Merchant shop profiles
- Product listings
- Orders
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'users',
            'columns': [
                {'name': 'id', 'type': 'TEXT', 'primary_key': True},
                {'name': 'email', 'type': 'TEXT'},
                {'name': 'auth_provider', 'type': 'TEXT', 'nullable': False},
                {'name': 'auth_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'wallet_address', 'type': 'TEXT'},
                {'name': 'is_merchant', 'type': 'BOOLEAN', 'default': 'false'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'unique': [['auth_provider', 'auth_id']]
        },
        {
            'name': 'merchants',
            'columns': [
                {'name': 'user_id', 'type': 'TEXT', 'primary_key': True},
                {'name': 'shop_name', 'type': 'TEXT'},
                {'name': 'address', 'type': 'TEXT'},
                {'name': 'latitude', 'type': 'DOUBLE PRECISION'},
                {'name': 'longitude', 'type': 'DOUBLE PRECISION'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)'}
            ]
        },
        {
            'name': 'products',
            'columns': [
                {'name': 'id', 'type': 'SERIAL', 'primary_key': True},
                {'name': 'merchant_id', 'type': 'TEXT', 'default': "'default_merchant'"},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'original_price', 'type': 'NUMERIC(10, 2)', 'nullable': False},
                {'name': 'current_price', 'type': 'NUMERIC(10, 2)', 'nullable': False},
                {'name': 'expiry_date', 'type': 'TIMESTAMPTZ', 'nullable': False},
                {'name': 'latitude', 'type': 'DOUBLE PRECISION', 'nullable': False},
                {'name': 'longitude', 'type': 'DOUBLE PRECISION', 'nullable': False},
                {'name': 'is_listed', 'type': 'BOOLEAN', 'default': 'false'},
                {'name': 'status', 'type': 'TEXT', 'default': "'AVAILABLE'"},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_products_status_expiry', 'columns': ['status', 'expiry_date']}
            ]
        },
        {
            'name': 'orders',
            'columns': [
                {'name': 'id', 'type': 'SERIAL', 'primary_key': True},
                {'name': 'product_id', 'type': 'INT4'},
                {'name': 'consumer_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['product_id'], 'references': 'products(id)'}
            ]
        }
    ]
}
