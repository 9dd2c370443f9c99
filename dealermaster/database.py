"""Database management module for DealerMaster."""
import json
import random
import sqlite3
import pandas as pd
from datetime import datetime
from contextlib import contextmanager
from typing import List, Optional

from dealermaster.config import MAX_VEHICLE_PHOTOS, PROPOSAL_NUMBER_PREFIX, RESERVATION_NUMBER_PREFIX
from dealermaster.data_structures import (
    Vehicle, Bank, Client, Simulation, Proposal, Reservation, Sale, DealResult,
    VehicleStatus, ReservationStatus, FuelType, TransmissionType
)
from dealermaster.exceptions import (
    DatabaseError, TransactionError, InvalidAmountError, ConflictError, VehicleNotFoundError
)
from dealermaster.legacy import (
    normalize_proposal_record, normalize_reservation_record, normalize_vehicle_record
)
from dealermaster.services.rate_resolver import parse_rate_table
from dealermaster.services.state_machine import apply_reservation_transition


class DatabaseManager:
    """Handles all SQLite database operations.

    Write methods commit immediately unless they run inside transaction(),
    in which case the whole block commits or rolls back together.
    """

    def __init__(self, db_name="dealer_master.db"):
        self.db_name = db_name
        self.conn = sqlite3.connect(db_name)
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._closed = False
        self._transaction_depth = 0
        self.create_tables()

    def close(self):
        """Close the database connection."""
        if self.conn and not self._closed:
            self.conn.close()
            self._closed = True

    def __del__(self):
        """Ensure connection is closed on garbage collection."""
        self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _commit(self):
        if not self._transaction_depth:
            self.conn.commit()

    @contextmanager
    def transaction(self):
        """Context manager for atomic multi-table writes.

        Usage:
            with db.transaction():
                db.update_reservation_status(res_id, "converted")
                db.update_vehicle_status(vehicle_id, "sold")

        The write lock is taken up front (BEGIN IMMEDIATE) so checks made
        inside the block cannot be invalidated by another writer. Nested
        blocks join the outer transaction. If any exception occurs, the
        transaction is rolled back.
        """
        if self._transaction_depth:
            self._transaction_depth += 1
            try:
                yield
            finally:
                self._transaction_depth -= 1
            return

        try:
            if not self.conn.in_transaction:
                self.conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise TransactionError(f"Could not start transaction: {str(e)}")

        self._transaction_depth = 1
        try:
            yield
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise TransactionError(f"Transaction failed: {str(e)}")
        except Exception:
            self.conn.rollback()
            raise
        finally:
            self._transaction_depth = 0

    def create_tables(self):
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS vehicles (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                brand TEXT NOT NULL,
                model TEXT NOT NULL,
                version TEXT,
                year_fab INTEGER NOT NULL,
                year_model INTEGER NOT NULL,
                color TEXT,
                price REAL NOT NULL,
                mileage INTEGER DEFAULT 0,
                fuel TEXT DEFAULT 'flex',
                transmission TEXT DEFAULT 'manual',
                plate TEXT,
                chassis TEXT,
                renavam TEXT,
                crv_number TEXT,
                status TEXT NOT NULL DEFAULT 'available',
                photos TEXT DEFAULT '[]',
                description TEXT,
                created_at TEXT,
                updated_at TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS banks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                rates TEXT,
                commission_percent REAL DEFAULT 0,
                is_active INTEGER DEFAULT 1,
                created_at TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS clients (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                cpf TEXT,
                phone TEXT,
                email TEXT,
                vendor_id TEXT,
                funnel_stage TEXT DEFAULT 'lead',
                created_at TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS simulations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                number TEXT,
                vehicle_id INTEGER,
                client_id INTEGER NOT NULL,
                vendor_id TEXT,
                result TEXT NOT NULL,
                created_at TEXT,
                FOREIGN KEY(vehicle_id) REFERENCES vehicles(id) ON DELETE SET NULL,
                FOREIGN KEY(client_id) REFERENCES clients(id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS proposals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                number TEXT NOT NULL,
                client_id INTEGER,
                vehicle_id INTEGER,
                vendor_id TEXT,
                deal_type TEXT NOT NULL,
                bank_id INTEGER,
                vehicle_price REAL NOT NULL,
                cash_price REAL,
                down_payment REAL DEFAULT 0,
                financed_amount REAL DEFAULT 0,
                installment_count INTEGER DEFAULT 1,
                installment_value REAL DEFAULT 0,
                total_amount REAL NOT NULL,
                status TEXT NOT NULL DEFAULT 'negotiating',
                client_signature TEXT,
                vendor_signature TEXT,
                notes TEXT,
                simulation_id INTEGER,
                created_at TEXT,
                updated_at TEXT,
                FOREIGN KEY(client_id) REFERENCES clients(id) ON DELETE SET NULL,
                FOREIGN KEY(vehicle_id) REFERENCES vehicles(id) ON DELETE SET NULL,
                FOREIGN KEY(bank_id) REFERENCES banks(id) ON DELETE SET NULL
            )
        """)
        # Migration for databases created before first due dates were tracked
        try:
            cursor.execute("ALTER TABLE proposals ADD COLUMN first_due_date TEXT")
        except sqlite3.OperationalError:
            pass

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS reservations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                number TEXT NOT NULL,
                vehicle_id INTEGER NOT NULL,
                client_id INTEGER,
                vendor_id TEXT,
                status TEXT NOT NULL DEFAULT 'active',
                deposit_amount REAL DEFAULT 0,
                reservation_date TEXT,
                expiry_date TEXT,
                notes TEXT,
                created_at TEXT,
                updated_at TEXT,
                FOREIGN KEY(vehicle_id) REFERENCES vehicles(id),
                FOREIGN KEY(client_id) REFERENCES clients(id) ON DELETE SET NULL
            )
        """)
        # One active reservation per vehicle
        cursor.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_reservations_active_vehicle
            ON reservations(vehicle_id) WHERE status = 'active'
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sales (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                proposal_id INTEGER,
                vehicle_id INTEGER,
                client_id INTEGER,
                vendor_id TEXT,
                total_value REAL NOT NULL,
                commission_value REAL DEFAULT 0,
                sale_date TEXT,
                created_at TEXT,
                FOREIGN KEY(proposal_id) REFERENCES proposals(id) ON DELETE SET NULL,
                FOREIGN KEY(vehicle_id) REFERENCES vehicles(id) ON DELETE SET NULL
            )
        """)

        # Settings Table
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)

        self.conn.commit()

    # Helpers
    @staticmethod
    def _now():
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def _fetch_one(self, query, params=()):
        cursor = self.conn.cursor()
        cursor.execute(query, params)
        row = cursor.fetchone()
        if row:
            cols = [description[0] for description in cursor.description]
            return dict(zip(cols, row))
        return None

    def _fetch_all(self, query, params=()):
        cursor = self.conn.cursor()
        cursor.execute(query, params)
        cols = [description[0] for description in cursor.description]
        return [dict(zip(cols, row)) for row in cursor.fetchall()]

    def generate_document_number(self, prefix, table):
        """Generate a document number like PROP2026100427 (prefix + YYYYMM + 4 digits).

        Retries on collision with an existing number in the given table.
        """
        year_month = datetime.now().strftime("%Y%m")
        for _ in range(50):
            number = f"{prefix}{year_month}{random.randint(0, 9999):04d}"
            if not self._fetch_one(f"SELECT 1 FROM {table} WHERE number=?", (number,)):
                return number
        raise DatabaseError("Could not generate a unique document number", {'prefix': prefix})

    # Vehicle operations
    @staticmethod
    def _validate_vehicle(vehicle: Vehicle):
        if vehicle.price < 0:
            raise InvalidAmountError("Vehicle price cannot be negative", price=vehicle.price)
        if len(vehicle.photos) > MAX_VEHICLE_PHOTOS:
            raise ValueError(f"A vehicle holds at most {MAX_VEHICLE_PHOTOS} photos.")
        if vehicle.status not in VehicleStatus.ALL:
            raise ValueError(f"Unknown vehicle status '{vehicle.status}'.")
        if vehicle.fuel not in FuelType.ALL:
            raise ValueError(f"Unknown fuel type '{vehicle.fuel}'.")
        if vehicle.transmission not in TransmissionType.ALL:
            raise ValueError(f"Unknown transmission type '{vehicle.transmission}'.")

    def add_vehicle(self, vehicle: Vehicle) -> int:
        self._validate_vehicle(vehicle)
        now = self._now()
        cursor = self.conn.cursor()
        cursor.execute("""
            INSERT INTO vehicles (
                brand, model, version, year_fab, year_model, color, price, mileage,
                fuel, transmission, plate, chassis, renavam, crv_number, status,
                photos, description, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (vehicle.brand, vehicle.model, vehicle.version, vehicle.year_fab, vehicle.year_model,
              vehicle.color, vehicle.price, vehicle.mileage, vehicle.fuel, vehicle.transmission,
              vehicle.plate, vehicle.chassis, vehicle.renavam, vehicle.crv_number, vehicle.status,
              json.dumps(vehicle.photos), vehicle.description, now, now))
        self._commit()
        vehicle.id = cursor.lastrowid
        return vehicle.id

    @staticmethod
    def _row_to_vehicle(row) -> Vehicle:
        return Vehicle(
            id=row['id'],
            brand=row['brand'],
            model=row['model'],
            version=row['version'],
            year_fab=row['year_fab'],
            year_model=row['year_model'],
            color=row['color'] or "",
            price=float(row['price']),
            mileage=row['mileage'] or 0,
            fuel=row['fuel'],
            transmission=row['transmission'],
            plate=row['plate'],
            chassis=row['chassis'],
            renavam=row['renavam'],
            crv_number=row['crv_number'],
            status=row['status'],
            photos=json.loads(row['photos'] or "[]"),
            description=row['description'],
        )

    def get_vehicle(self, id) -> Optional[Vehicle]:
        row = self._fetch_one("SELECT * FROM vehicles WHERE id=?", (id,))
        return self._row_to_vehicle(row) if row else None

    def get_vehicles(self, status=None) -> List[Vehicle]:
        if status:
            rows = self._fetch_all("SELECT * FROM vehicles WHERE status=? ORDER BY id", (status,))
        else:
            rows = self._fetch_all("SELECT * FROM vehicles ORDER BY id")
        return [self._row_to_vehicle(r) for r in rows]

    def get_vehicles_df(self, status=None):
        query = "SELECT id, brand, model, year_model, price, mileage, status FROM vehicles"
        params = []
        if status:
            query += " WHERE status = ?"
            params.append(status)
        query += " ORDER BY id"
        return pd.read_sql_query(query, self.conn, params=tuple(params))

    def update_vehicle(self, vehicle: Vehicle):
        self._validate_vehicle(vehicle)
        cursor = self.conn.cursor()
        cursor.execute("""
            UPDATE vehicles SET brand=?, model=?, version=?, year_fab=?, year_model=?, color=?,
                price=?, mileage=?, fuel=?, transmission=?, plate=?, chassis=?, renavam=?,
                crv_number=?, photos=?, description=?, updated_at=?
            WHERE id=?
        """, (vehicle.brand, vehicle.model, vehicle.version, vehicle.year_fab, vehicle.year_model,
              vehicle.color, vehicle.price, vehicle.mileage, vehicle.fuel, vehicle.transmission,
              vehicle.plate, vehicle.chassis, vehicle.renavam, vehicle.crv_number,
              json.dumps(vehicle.photos), vehicle.description, self._now(), vehicle.id))
        self._commit()

    def update_vehicle_status(self, id, status):
        if status not in VehicleStatus.ALL:
            raise ValueError(f"Unknown vehicle status '{status}'.")
        cursor = self.conn.cursor()
        cursor.execute("UPDATE vehicles SET status=?, updated_at=? WHERE id=?", (status, self._now(), id))
        self._commit()

    def delete_vehicle(self, id):
        """Delete a vehicle unless a sale references it."""
        if self._fetch_one("SELECT 1 FROM sales WHERE vehicle_id=?", (id,)):
            raise ConflictError("Vehicle is referenced by a sale and cannot be deleted", {'vehicle_id': id})
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM reservations WHERE vehicle_id=?", (id,))
        cursor.execute("DELETE FROM vehicles WHERE id=?", (id,))
        self._commit()

    # Bank operations
    def add_bank(self, bank: Bank) -> int:
        rates = parse_rate_table(bank.rates)
        cursor = self.conn.cursor()
        cursor.execute("""
            INSERT INTO banks (name, rates, commission_percent, is_active, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (bank.name, json.dumps(rates) if rates else None, bank.commission_percent,
              1 if bank.is_active else 0, self._now()))
        self._commit()
        bank.id = cursor.lastrowid
        return bank.id

    @staticmethod
    def _row_to_bank(row) -> Bank:
        return Bank(
            id=row['id'],
            name=row['name'],
            rates=parse_rate_table(row['rates']),
            commission_percent=float(row['commission_percent'] or 0),
            is_active=bool(row['is_active']),
        )

    def get_bank(self, id) -> Optional[Bank]:
        row = self._fetch_one("SELECT * FROM banks WHERE id=?", (id,))
        return self._row_to_bank(row) if row else None

    def get_bank_by_name(self, name) -> Optional[Bank]:
        row = self._fetch_one("SELECT * FROM banks WHERE lower(name)=lower(?)", (name,))
        return self._row_to_bank(row) if row else None

    def get_banks(self, active_only=False) -> List[Bank]:
        query = "SELECT * FROM banks"
        if active_only:
            query += " WHERE is_active=1"
        query += " ORDER BY name"
        return [self._row_to_bank(r) for r in self._fetch_all(query)]

    def update_bank(self, bank: Bank):
        rates = parse_rate_table(bank.rates)
        cursor = self.conn.cursor()
        cursor.execute("""
            UPDATE banks SET name=?, rates=?, commission_percent=?, is_active=? WHERE id=?
        """, (bank.name, json.dumps(rates) if rates else None, bank.commission_percent,
              1 if bank.is_active else 0, bank.id))
        self._commit()

    def set_bank_active(self, id, is_active):
        cursor = self.conn.cursor()
        cursor.execute("UPDATE banks SET is_active=? WHERE id=?", (1 if is_active else 0, id))
        self._commit()

    def delete_bank(self, id):
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM banks WHERE id=?", (id,))
        self._commit()

    # Client operations
    def add_client(self, client: Client) -> int:
        cursor = self.conn.cursor()
        cursor.execute("""
            INSERT INTO clients (name, cpf, phone, email, vendor_id, funnel_stage, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (client.name, client.cpf, client.phone, client.email, client.vendor_id,
              client.funnel_stage, self._now()))
        self._commit()
        client.id = cursor.lastrowid
        return client.id

    def get_client(self, id) -> Optional[Client]:
        row = self._fetch_one("SELECT * FROM clients WHERE id=?", (id,))
        if not row:
            return None
        return Client(
            id=row['id'], name=row['name'], cpf=row['cpf'] or "", phone=row['phone'] or "",
            email=row['email'] or "", vendor_id=row['vendor_id'], funnel_stage=row['funnel_stage']
        )

    def count_clients(self, vendor_id=None):
        cursor = self.conn.cursor()
        if vendor_id is not None:
            cursor.execute("SELECT COUNT(*) FROM clients WHERE vendor_id=?", (vendor_id,))
        else:
            cursor.execute("SELECT COUNT(*) FROM clients")
        return cursor.fetchone()[0]

    def update_client_funnel_stage(self, id, stage):
        cursor = self.conn.cursor()
        cursor.execute("UPDATE clients SET funnel_stage=? WHERE id=?", (stage, id))
        self._commit()

    # Simulation operations
    def add_simulation(self, simulation: Simulation) -> int:
        cursor = self.conn.cursor()
        cursor.execute("""
            INSERT INTO simulations (number, vehicle_id, client_id, vendor_id, result, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (simulation.number, simulation.vehicle_id, simulation.client_id, simulation.vendor_id,
              json.dumps(simulation.result.__dict__), simulation.created_at or self._now()))
        self._commit()
        simulation.id = cursor.lastrowid
        return simulation.id

    def get_simulation(self, id) -> Optional[Simulation]:
        row = self._fetch_one("SELECT * FROM simulations WHERE id=?", (id,))
        if not row:
            return None
        return Simulation(
            id=row['id'],
            number=row['number'],
            vehicle_id=row['vehicle_id'],
            client_id=row['client_id'],
            vendor_id=row['vendor_id'],
            result=DealResult(**json.loads(row['result'])),
            created_at=row['created_at'],
        )

    def get_simulations_df(self, vendor_id=None, client_id=None):
        query = "SELECT id, number, vehicle_id, client_id, vendor_id, created_at FROM simulations WHERE 1=1"
        params = []
        if vendor_id is not None:
            query += " AND vendor_id = ?"
            params.append(vendor_id)
        if client_id is not None:
            query += " AND client_id = ?"
            params.append(client_id)
        query += " ORDER BY created_at DESC, id DESC"
        return pd.read_sql_query(query, self.conn, params=tuple(params))

    # Proposal operations
    def add_proposal(self, proposal: Proposal) -> int:
        now = self._now()
        cursor = self.conn.cursor()
        cursor.execute("""
            INSERT INTO proposals (
                number, client_id, vehicle_id, vendor_id, deal_type, bank_id, vehicle_price,
                cash_price, down_payment, financed_amount, installment_count, installment_value,
                total_amount, status, client_signature, vendor_signature, notes, simulation_id,
                first_due_date, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (proposal.number, proposal.client_id, proposal.vehicle_id, proposal.vendor_id,
              proposal.deal_type, proposal.bank_id, proposal.vehicle_price, proposal.cash_price,
              proposal.down_payment, proposal.financed_amount, proposal.installment_count,
              proposal.installment_value, proposal.total_amount, proposal.status,
              proposal.client_signature, proposal.vendor_signature, proposal.notes,
              proposal.simulation_id, proposal.first_due_date,
              proposal.created_at or now, proposal.updated_at or now))
        self._commit()
        proposal.id = cursor.lastrowid
        return proposal.id

    @staticmethod
    def _row_to_proposal(row) -> Proposal:
        return Proposal(
            id=row['id'],
            number=row['number'],
            client_id=row['client_id'],
            vehicle_id=row['vehicle_id'],
            vendor_id=row['vendor_id'],
            deal_type=row['deal_type'],
            bank_id=row['bank_id'],
            vehicle_price=float(row['vehicle_price']),
            cash_price=float(row['cash_price']) if row['cash_price'] is not None else None,
            down_payment=float(row['down_payment'] or 0),
            financed_amount=float(row['financed_amount'] or 0),
            installment_count=int(row['installment_count'] or 1),
            installment_value=float(row['installment_value'] or 0),
            total_amount=float(row['total_amount']),
            status=row['status'],
            client_signature=row['client_signature'],
            vendor_signature=row['vendor_signature'],
            notes=row['notes'],
            simulation_id=row['simulation_id'],
            first_due_date=row.get('first_due_date'),
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )

    def get_proposal(self, id) -> Optional[Proposal]:
        row = self._fetch_one("SELECT * FROM proposals WHERE id=?", (id,))
        return self._row_to_proposal(row) if row else None

    def get_proposals(self, status=None, vendor_id=None, client_id=None) -> List[Proposal]:
        query = "SELECT * FROM proposals WHERE 1=1"
        params = []
        if status:
            query += " AND status = ?"
            params.append(status)
        if vendor_id is not None:
            query += " AND vendor_id = ?"
            params.append(vendor_id)
        if client_id is not None:
            query += " AND client_id = ?"
            params.append(client_id)
        query += " ORDER BY created_at DESC, id DESC"
        return [self._row_to_proposal(r) for r in self._fetch_all(query, tuple(params))]

    def get_proposals_df(self, vendor_id=None, client_id=None):
        query = """
            SELECT id, number, client_id, vendor_id, deal_type, status, total_amount, created_at
            FROM proposals WHERE 1=1
        """
        params = []
        if vendor_id is not None:
            query += " AND vendor_id = ?"
            params.append(vendor_id)
        if client_id is not None:
            query += " AND client_id = ?"
            params.append(client_id)
        query += " ORDER BY created_at DESC, id DESC"
        return pd.read_sql_query(query, self.conn, params=tuple(params))

    def update_proposal_status(self, id, status):
        cursor = self.conn.cursor()
        cursor.execute("UPDATE proposals SET status=?, updated_at=? WHERE id=?", (status, self._now(), id))
        self._commit()

    def update_proposal_signature(self, id, column, signature):
        """Store a signature blob. Column must be client_signature or vendor_signature."""
        if column not in ("client_signature", "vendor_signature"):
            raise ValueError(f"Unknown signature column '{column}'.")
        cursor = self.conn.cursor()
        cursor.execute(f"UPDATE proposals SET {column}=?, updated_at=? WHERE id=?",
                       (signature, self._now(), id))
        self._commit()

    def delete_proposal(self, id):
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM proposals WHERE id=?", (id,))
        self._commit()

    def import_legacy_proposals(self, records) -> int:
        """Normalize and insert proposal records exported by older versions.

        Bank names carried by legacy records are resolved to bank ids. The
        whole batch is imported atomically.

        Returns:
            Number of proposals imported.
        """
        count = 0
        with self.transaction():
            for record in records:
                data = normalize_proposal_record(record)
                bank_name = data.pop('bank_name', None)
                if data.get('deal_type') == 'bank_financed' and not data.get('bank_id') and bank_name:
                    bank = self.get_bank_by_name(bank_name)
                    data['bank_id'] = bank.id if bank else None
                if not data.get('number'):
                    data['number'] = self.generate_document_number(PROPOSAL_NUMBER_PREFIX, "proposals")

                fields = {k: v for k, v in data.items() if k in Proposal.__dataclass_fields__ and k != 'id'}
                self.add_proposal(Proposal(**fields))
                count += 1
        return count

    def import_legacy_vehicles(self, records) -> int:
        """Normalize and insert vehicle records exported by older versions."""
        count = 0
        with self.transaction():
            for record in records:
                data = normalize_vehicle_record(record)
                fields = {k: v for k, v in data.items() if k in Vehicle.__dataclass_fields__ and k != 'id'}
                self.add_vehicle(Vehicle(**fields))
                count += 1
        return count

    def import_legacy_reservations(self, records) -> int:
        """Normalize and insert reservation records exported by older versions.

        An imported active reservation holds its vehicle exactly like a new
        one: the vehicle must be available and free of other active
        reservations, and is marked reserved. Historical records (converted
        or cancelled) are stored as they are. The whole batch is imported
        atomically.

        Raises:
            VehicleNotFoundError: If an active record points at a missing vehicle.
            ConflictError: If an active record's vehicle is already held or not available.
        """
        count = 0
        with self.transaction():
            for record in records:
                data = normalize_reservation_record(record)
                if not data.get('number'):
                    data['number'] = self.generate_document_number(RESERVATION_NUMBER_PREFIX, "reservations")
                fields = {k: v for k, v in data.items() if k in Reservation.__dataclass_fields__ and k != 'id'}
                reservation = Reservation(**fields)

                transition = None
                if reservation.status == ReservationStatus.ACTIVE:
                    transition = self._hold_vehicle_for(reservation)
                self.add_reservation(reservation)
                if transition is not None:
                    self.update_vehicle_status(transition.vehicle_id, transition.vehicle_status)
                count += 1
        return count

    def _hold_vehicle_for(self, reservation: Reservation):
        vehicle = self.get_vehicle(reservation.vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(reservation.vehicle_id)
        existing = self.get_active_reservation_for_vehicle(reservation.vehicle_id)
        if existing is not None:
            raise ConflictError("Vehicle already has an active reservation",
                                {'vehicle_id': reservation.vehicle_id, 'reservation': existing.number})
        if vehicle.status != VehicleStatus.AVAILABLE:
            raise ConflictError("Vehicle is not available",
                                {'vehicle_id': reservation.vehicle_id, 'status': vehicle.status})

        return apply_reservation_transition(reservation, ReservationStatus.ACTIVE).unwrap()

    # Reservation operations
    def add_reservation(self, reservation: Reservation) -> int:
        now = self._now()
        cursor = self.conn.cursor()
        cursor.execute("""
            INSERT INTO reservations (
                number, vehicle_id, client_id, vendor_id, status, deposit_amount,
                reservation_date, expiry_date, notes, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (reservation.number, reservation.vehicle_id, reservation.client_id, reservation.vendor_id,
              reservation.status, reservation.deposit_amount, reservation.reservation_date,
              reservation.expiry_date, reservation.notes, now, now))
        self._commit()
        reservation.id = cursor.lastrowid
        return reservation.id

    @staticmethod
    def _row_to_reservation(row) -> Reservation:
        return Reservation(
            id=row['id'],
            number=row['number'],
            vehicle_id=row['vehicle_id'],
            client_id=row['client_id'],
            vendor_id=row['vendor_id'],
            status=row['status'],
            deposit_amount=float(row['deposit_amount'] or 0),
            reservation_date=row['reservation_date'],
            expiry_date=row['expiry_date'],
            notes=row['notes'],
        )

    def get_reservation(self, id) -> Optional[Reservation]:
        row = self._fetch_one("SELECT * FROM reservations WHERE id=?", (id,))
        return self._row_to_reservation(row) if row else None

    def get_active_reservation_for_vehicle(self, vehicle_id) -> Optional[Reservation]:
        row = self._fetch_one(
            "SELECT * FROM reservations WHERE vehicle_id=? AND status='active'", (vehicle_id,)
        )
        return self._row_to_reservation(row) if row else None

    def get_reservations(self, status=None, vendor_id=None, client_id=None) -> List[Reservation]:
        query = "SELECT * FROM reservations WHERE 1=1"
        params = []
        if status:
            query += " AND status = ?"
            params.append(status)
        if vendor_id is not None:
            query += " AND vendor_id = ?"
            params.append(vendor_id)
        if client_id is not None:
            query += " AND client_id = ?"
            params.append(client_id)
        query += " ORDER BY created_at DESC, id DESC"
        return [self._row_to_reservation(r) for r in self._fetch_all(query, tuple(params))]

    def update_reservation_status(self, id, status):
        cursor = self.conn.cursor()
        cursor.execute("UPDATE reservations SET status=?, updated_at=? WHERE id=?", (status, self._now(), id))
        self._commit()

    def delete_reservation(self, id):
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM reservations WHERE id=?", (id,))
        self._commit()

    # Sale operations
    def add_sale(self, sale: Sale) -> int:
        cursor = self.conn.cursor()
        cursor.execute("""
            INSERT INTO sales (
                proposal_id, vehicle_id, client_id, vendor_id, total_value,
                commission_value, sale_date, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (sale.proposal_id, sale.vehicle_id, sale.client_id, sale.vendor_id, sale.total_value,
              sale.commission_value, sale.sale_date, self._now()))
        self._commit()
        sale.id = cursor.lastrowid
        return sale.id

    def get_sales_df(self, vendor_id=None, client_id=None, start_date=None, end_date=None):
        query = "SELECT * FROM sales WHERE 1=1"
        params = []
        if vendor_id is not None:
            query += " AND vendor_id = ?"
            params.append(vendor_id)
        if client_id is not None:
            query += " AND client_id = ?"
            params.append(client_id)
        if start_date:
            query += " AND sale_date >= ?"
            params.append(start_date)
        if end_date:
            query += " AND sale_date <= ?"
            params.append(end_date)
        query += " ORDER BY sale_date, id"
        return pd.read_sql_query(query, self.conn, params=tuple(params))

    # Settings
    def get_setting(self, key, default=None):
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM settings WHERE key=?", (key,))
        row = cursor.fetchone()
        return row[0] if row else default

    def set_setting(self, key, value):
        cursor = self.conn.cursor()
        cursor.execute("INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (key, str(value)))
        self._commit()
