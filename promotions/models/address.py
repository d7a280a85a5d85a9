from sqlalchemy import Column, Integer, String
from promotions.db.base_class import Base


class Address(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)

    full_name = Column(String(100), nullable=True)
    organization = Column(String(200), nullable=True)
    address_line1 = Column(String(200), nullable=True)
    address_line2 = Column(String(200), nullable=True)
    locality = Column(String(100), nullable=True)  # city
    administrative_area = Column(String(100), nullable=True)  # state / province
    postal_code = Column(String(20), nullable=True)
    country_code = Column(String(2), nullable=True)

    def as_snapshot(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "organization": self.organization,
            "address_line1": self.address_line1,
            "address_line2": self.address_line2,
            "locality": self.locality,
            "administrative_area": self.administrative_area,
            "postal_code": self.postal_code,
            "country_code": self.country_code,
        }
