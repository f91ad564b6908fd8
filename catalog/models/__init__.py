from catalog.database import Base

from .course import Course
from .enrollment import Enrollment, EnrollmentStatus
from .users import User

# Import all models here
# This way Base.metadata knows every table before create_all runs
