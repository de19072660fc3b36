"""
Django management command to load demo data for the rating platform.
Creates an admin, store owners with their stores, and users who rate them.
"""

from django.core.management.base import BaseCommand
from django.db import transaction


class Command(BaseCommand):
    help = 'Load demo data (admin, owners, stores, users, ratings)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing stores, ratings and non-superuser accounts first',
        )
        parser.add_argument(
            '--password',
            type=str,
            default='Demo1234@',
            help='Password for every demo account (default: Demo1234@)',
        )

    def _get_or_create_user(self, User, email, name, role, password, address=''):
        user, created = User.objects.get_or_create(
            email=email,
            defaults={'name': name, 'role': role, 'address': address},
        )
        user.set_password(password)
        user.save()
        if created:
            self.stdout.write(self.style.SUCCESS(f'Created {role}: {email}'))
        else:
            self.stdout.write(f'{role} already exists, password updated: {email}')
        return user

    @transaction.atomic
    def handle(self, *args, **options):
        from users.models import User
        from stores.models import Store
        from ratings.models import Rating

        password = options['password']

        if options['clear']:
            Rating.objects.all().delete()
            Store.objects.all().delete()
            User.objects.filter(is_superuser=False).delete()
            self.stdout.write(self.style.WARNING('Cleared existing demo data'))

        self.stdout.write(self.style.NOTICE('Loading demo data...'))

        # =================================================================
        # Accounts
        # =================================================================
        admin = self._get_or_create_user(
            User, 'admin@storerating.dev', 'Platform Administrator Account',
            User.Role.ADMIN, password
        )

        owners_data = [
            ('owner.bakery@storerating.dev', 'Sunrise Bakery Owner Account', '12 Market Street'),
            ('owner.books@storerating.dev', 'Corner Bookshop Owner Account', '48 Library Lane'),
        ]
        owners = [
            self._get_or_create_user(User, email, name, User.Role.OWNER, password, address)
            for email, name, address in owners_data
        ]

        users_data = [
            ('alice@storerating.dev', 'Alice Regular Customer Name'),
            ('bob@storerating.dev', 'Bob Frequent Shopper Account'),
            ('carol@storerating.dev', 'Carol Weekend Visitor Account'),
        ]
        customers = [
            self._get_or_create_user(User, email, name, User.Role.USER, password)
            for email, name in users_data
        ]

        # =================================================================
        # Stores (linked to owners through the shared email)
        # =================================================================
        stores_data = [
            ('Sunrise Bakery', owners[0].email, '12 Market Street, Springfield'),
            ('Corner Bookshop', owners[1].email, '48 Library Lane, Springfield'),
            ('Green Grocer', None, '7 Orchard Road, Springfield'),
        ]
        stores = []
        for name, email, address in stores_data:
            store, created = Store.objects.get_or_create(
                name=name,
                defaults={'email': email, 'address': address},
            )
            if store.owner_id is None and email:
                store.owner = User.objects.filter(email=email, role=User.Role.OWNER).first()
                store.save(update_fields=['owner'])
            stores.append(store)
            if created:
                self.stdout.write(self.style.SUCCESS(f'Created store: {store.name}'))

        # =================================================================
        # Ratings
        # =================================================================
        ratings_created = 0
        scores = [[5, 4, 3], [4, 4, 5], [2, 3, 4]]
        for store, store_scores in zip(stores, scores):
            for customer, score in zip(customers, store_scores):
                _, created = Rating.objects.get_or_create(
                    user=customer,
                    store=store,
                    defaults={'rating': score, 'comment': f'{score} stars from {customer.name.split()[0]}'},
                )
                ratings_created += int(created)

        self.stdout.write(self.style.SUCCESS(f'Created {ratings_created} ratings'))

        # =================================================================
        # Summary
        # =================================================================
        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS('=' * 60))
        self.stdout.write(self.style.SUCCESS('   DEMO DATA LOADED SUCCESSFULLY!'))
        self.stdout.write(self.style.SUCCESS('=' * 60))
        self.stdout.write(f'  Users: {User.objects.count()}')
        self.stdout.write(f'  Stores: {Store.objects.count()}')
        self.stdout.write(f'  Ratings: {Rating.objects.count()}')
        self.stdout.write('')
        self.stdout.write(self.style.WARNING(f'  Admin login: {admin.email} / {password}'))
        self.stdout.write(self.style.SUCCESS('=' * 60))
