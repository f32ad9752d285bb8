from clinicrx.models.patient import Patient
from clinicrx.models.prescription import Prescription, PrescriptionMedication
from clinicrx.models.inventory import InventoryItem

__all__ = ["Patient", "Prescription", "PrescriptionMedication", "InventoryItem"]
