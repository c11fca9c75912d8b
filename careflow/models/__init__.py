from careflow.models.user import User, RoleEnum
from careflow.models.patient import Patient
from careflow.models.doctor import Doctor
from careflow.models.nurse import Nurse
from careflow.models.appointment import Appointment, AppointmentStatus, AppointmentStatusChange
from careflow.models.schedule import DoctorSchedule, NurseSchedule, DayOfWeek, Shift
from careflow.models.clinical import Diagnosis, LabReport, LabReportStatus
from careflow.models.prescription import Prescription, PrescriptionStatus
