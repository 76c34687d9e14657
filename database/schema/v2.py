"""Schema v2 - Phone sign-up, richer merchant profiles and social features.

This version adds:
- Phone numbers on users (unique among phone-authenticated users)
- Contact, business hours, category and description on merchants
- Image URL on products and status on orders
- One order per product
- Reviews, favorites and notifications
"""

schema = {
    'version': 2,
    'tables': [
        {
            'name': 'users',
            'columns': [
                {'name': 'id', 'type': 'TEXT', 'primary_key': True},
                {'name': 'email', 'type': 'TEXT'},
                {'name': 'phone', 'type': 'TEXT'},
                {'name': 'phone_verified', 'type': 'BOOLEAN', 'default': 'false'},
                {'name': 'auth_provider', 'type': 'TEXT', 'nullable': False},
                {'name': 'auth_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'wallet_address', 'type': 'TEXT'},
                {'name': 'is_merchant', 'type': 'BOOLEAN', 'default': 'false'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'unique': [['auth_provider', 'auth_id']],
            'indexes': [
                {'name': 'idx_users_phone', 'columns': ['phone'], 'unique': True, 'where': "auth_provider = 'phone'"}
            ]
        },
        {
            'name': 'merchants',
            'columns': [
                {'name': 'user_id', 'type': 'TEXT', 'primary_key': True},
                {'name': 'shop_name', 'type': 'TEXT'},
                {'name': 'address', 'type': 'TEXT'},
                {'name': 'latitude', 'type': 'DOUBLE PRECISION'},
                {'name': 'longitude', 'type': 'DOUBLE PRECISION'},
                {'name': 'phone', 'type': 'TEXT'},
                {'name': 'email', 'type': 'TEXT'},
                {'name': 'business_hours_open', 'type': 'TEXT'},
                {'name': 'business_hours_close', 'type': 'TEXT'},
                {'name': 'category', 'type': 'TEXT'},
                {'name': 'description', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)'}
            ],
            'indexes': [
                {'name': 'idx_merchants_category', 'columns': ['category']}
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
                {'name': 'status', 'type': 'TEXT', 'default': "'AVAILABLE'", 'check': "status IN ('AVAILABLE', 'SOLD')"},
                {'name': 'image_url', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_products_status_expiry', 'columns': ['status', 'expiry_date']},
                {'name': 'idx_products_merchant', 'columns': ['merchant_id']}
            ]
        },
        {
            'name': 'orders',
            'columns': [
                {'name': 'id', 'type': 'SERIAL', 'primary_key': True},
                {'name': 'product_id', 'type': 'INT4'},
                {'name': 'consumer_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'default': "'confirmed'"},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['product_id'], 'references': 'products(id)'}
            ],
            'indexes': [
                {'name': 'idx_orders_product', 'columns': ['product_id'], 'unique': True},
                {'name': 'idx_orders_consumer', 'columns': ['consumer_id']}
            ]
        },
        {
            'name': 'reviews',
            'columns': [
                {'name': 'id', 'type': 'SERIAL', 'primary_key': True},
                {'name': 'order_id', 'type': 'INT4'},
                {'name': 'user_id', 'type': 'TEXT'},
                {'name': 'merchant_id', 'type': 'TEXT'},
                {'name': 'rating', 'type': 'INT4', 'check': 'rating >= 1 AND rating <= 5'},
                {'name': 'comment', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['order_id'], 'references': 'orders(id)'},
                {'columns': ['user_id'], 'references': 'users(id)'},
                {'columns': ['merchant_id'], 'references': 'merchants(user_id)'}
            ],
            'indexes': [
                {'name': 'idx_reviews_merchant', 'columns': ['merchant_id']}
            ]
        },
        {
            'name': 'favorites',
            'columns': [
                {'name': 'id', 'type': 'SERIAL', 'primary_key': True},
                {'name': 'user_id', 'type': 'TEXT'},
                {'name': 'merchant_id', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'unique': [['user_id', 'merchant_id']],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)'},
                {'columns': ['merchant_id'], 'references': 'merchants(user_id)'}
            ]
        },
        {
            'name': 'notifications',
            'columns': [
                {'name': 'id', 'type': 'SERIAL', 'primary_key': True},
                {'name': 'user_id', 'type': 'TEXT'},
                {'name': 'title', 'type': 'TEXT', 'nullable': False},
                {'name': 'body', 'type': 'TEXT'},
                {'name': 'type', 'type': 'TEXT', 'default': "'general'"},
                {'name': 'is_read', 'type': 'BOOLEAN', 'default': 'false'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)'}
            ],
            'indexes': [
                {'name': 'idx_notifications_user_created', 'columns': ['user_id', 'created_at']}
            ]
        }
    ],
    'migrations': [
        # Migration SQL from v1 to v2
        '''
        ALTER TABLE users
        ADD COLUMN IF NOT EXISTS phone TEXT,
        ADD COLUMN IF NOT EXISTS phone_verified BOOLEAN DEFAULT false;
        ''',
        '''
        CREATE UNIQUE INDEX IF NOT EXISTS idx_users_phone
        ON users(phone) WHERE auth_provider = 'phone';
        ''',
        '''
        ALTER TABLE merchants
        ADD COLUMN IF NOT EXISTS phone TEXT,
        ADD COLUMN IF NOT EXISTS email TEXT,
        ADD COLUMN IF NOT EXISTS business_hours_open TEXT,
        ADD COLUMN IF NOT EXISTS business_hours_close TEXT,
        ADD COLUMN IF NOT EXISTS category TEXT,
        ADD COLUMN IF NOT EXISTS description TEXT;
        ''',
        '''
        CREATE INDEX IF NOT EXISTS idx_merchants_category ON merchants(category);
        ''',
        '''
        ALTER TABLE products
        ADD COLUMN IF NOT EXISTS image_url TEXT;
        ''',
        '''
        CREATE INDEX IF NOT EXISTS idx_products_merchant ON products(merchant_id);
        ''',
        '''
        ALTER TABLE orders
        ADD COLUMN IF NOT EXISTS status TEXT DEFAULT 'confirmed';
        ''',
        '''
        CREATE UNIQUE INDEX IF NOT EXISTS idx_orders_product ON orders(product_id);
        ''',
        '''
        CREATE INDEX IF NOT EXISTS idx_orders_consumer ON orders(consumer_id);
        ''',
        '''
        CREATE TABLE IF NOT EXISTS reviews (
            id SERIAL PRIMARY KEY,
            order_id INT4 REFERENCES orders(id),
            user_id TEXT REFERENCES users(id),
            merchant_id TEXT REFERENCES merchants(user_id),
            rating INT4 CHECK (rating >= 1 AND rating <= 5),
            comment TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
        ''',
        '''
        CREATE INDEX IF NOT EXISTS idx_reviews_merchant ON reviews(merchant_id);
        ''',
        '''
        CREATE TABLE IF NOT EXISTS favorites (
            id SERIAL PRIMARY KEY,
            user_id TEXT REFERENCES users(id),
            merchant_id TEXT REFERENCES merchants(user_id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            UNIQUE (user_id, merchant_id)
        );
        ''',
        '''
        CREATE TABLE IF NOT EXISTS notifications (
            id SERIAL PRIMARY KEY,
            user_id TEXT REFERENCES users(id),
            title TEXT NOT NULL,
            body TEXT,
            type TEXT DEFAULT 'general',
            is_read BOOLEAN DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
        ''',
        '''
        CREATE INDEX IF NOT EXISTS idx_notifications_user_created
        ON notifications(user_id, created_at);
        '''
    ]
}
