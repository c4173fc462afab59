#!/usr/bin/env python3

import os
from decimal import Decimal

from expresslane.auth.service import UserService
from expresslane.database import Base, SessionLocal, engine
from expresslane.models import TollBooth

# (name, highway, latitude, longitude, express lane fee)
TOLL_BOOTHS = [
    ("NHAI GIPL Thrissur Paliyekkara Toll Plaza", "NH544", "10.5276", "76.2144", "55.00"),
    ("Panniyankara Toll Plaza", "NH544", "10.5910", "76.4586", "200.00"),
    ("Walayar Toll Plaza", "NH544", "10.8131", "76.7980", "60.00"),
    ("Cherthala Toll Plaza", "NH66", "9.6843", "76.3350", "45.00"),
    ("Kochi Bypass Toll Plaza", "NH66", "9.9079", "76.3110", "65.00"),
    ("Kollam Bypass Toll Plaza", "NH66", "8.8932", "76.6141", "50.00"),
    ("Thiruvananthapuram Bypass Toll Plaza", "NH66", "8.5241", "76.9366", "55.00"),
    ("Kannur Toll Plaza", "NH66", "11.8745", "75.3704", "50.00"),
    ("Kozhikode Bypass Toll Plaza", "NH66", "11.2588", "75.7804", "55.00"),
    ("Alappuzha Toll Plaza", "NH66", "9.4981", "76.3388", "45.00"),
    ("Malappuram Toll Plaza", "NH66", "11.0510", "76.0711", "45.00"),
    ("Kasaragod Toll Plaza", "NH66", "12.4996", "74.9869", "50.00"),
    ("Mangalore Toll Plaza", "NH66", "12.9141", "74.8560", "45.00"),
    ("Udupi Toll Plaza", "NH66", "13.3409", "74.7421", "50.00"),
    ("Ernakulam Toll Plaza", "NH85", "9.9312", "76.2673", "50.00"),
    ("Idukki Toll Plaza", "NH85", "9.9155", "76.9720", "55.00"),
    ("Kottayam Toll Plaza", "NH183", "9.5916", "76.5222", "50.00"),
    ("Pathanamthitta Toll Plaza", "NH183", "9.2648", "76.7873", "40.00"),
    ("Wayanad Toll Plaza", "NH766", "11.6854", "76.1320", "60.00"),
]

def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    
    try:
        print("🚀 Creating seed data for Highway Express Lane Booking...")
        
        existing = {name for (name,) in db.query(TollBooth.name).all()}
        toll_booths = [
            TollBooth(
                name=name,
                highway=highway,
                latitude=Decimal(lat),
                longitude=Decimal(lng),
                express_lane_fee=Decimal(fee)
            )
            for name, highway, lat, lng, fee in TOLL_BOOTHS
            if name not in existing
        ]
        print(f"Creating {len(toll_booths)} toll booths...")
        db.add_all(toll_booths)
        db.commit()
        
        admin_email = os.getenv("ADMIN_EMAIL", "admin@expresslane.in")
        if UserService.get_user_by_email(db, admin_email):
            print("✅ Admin account already exists, skipping...")
        else:
            UserService.create_admin(db, admin_email, os.getenv("ADMIN_PASSWORD", "Admin123!"))
            print(f"Created admin account {admin_email}")
        
        print("✅ Successfully created seed data!")
        
    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
