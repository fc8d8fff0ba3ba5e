"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from enum import Enum

from app.core.auth import is_strong_password

PASSWORD_RULES = (
    "Password must be at least 8 characters and include an uppercase letter, "
    "a lowercase letter, a number and a special character (@$!%*?&#)"
)


# ============================================================
# ENUMS
# ============================================================

class CompanyStatus(str, Enum):
    active = "active"
    pending = "pending"
    deactivated = "deactivated"


class ApprovalMode(str, Enum):
    auto_approved = "auto_approved"
    pending = "pending"


class JobStatus(str, Enum):
    draft = "draft"
    active = "active"
    closed = "closed"


class ExperienceLevel(str, Enum):
    entry = "Entry"
    intermediate = "Intermediate"
    senior = "Senior"
    lead = "Lead"


class EmploymentType(str, Enum):
    full_time = "Full-time"
    part_time = "Part-time"
    contract = "Contract"
    internship = "Internship"


class ApplicationStatus(str, Enum):
    pending = "pending"
    reviewed = "reviewed"
    interview = "interview"
    accepted = "accepted"
    rejected = "rejected"
    withdrawn = "withdrawn"


class ReviewStatus(str, Enum):
    """Statuses an employer may set; withdrawn is applicant-only."""
    pending = "pending"
    reviewed = "reviewed"
    interview = "interview"
    accepted = "accepted"
    rejected = "rejected"


class ProficiencyLevel(str, Enum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    advanced = "Advanced"
    expert = "Expert"


class CertificationSort(str, Enum):
    newest = "newest"
    oldest = "oldest"
    expiring_soon = "expiring_soon"


class DocumentType(str, Enum):
    resume = "resume"
    cover_letter = "cover_letter"
    certificate = "certificate"
    transcript = "transcript"
    id_document = "id_document"
    company_document = "company_document"
    logo = "logo"
    other = "other"


class NotificationType(str, Enum):
    application_received = "application_received"
    application_submitted = "application_submitted"
    application_status_changed = "application_status_changed"
    job_posted = "job_posted"
    job_closed = "job_closed"
    interview_scheduled = "interview_scheduled"
    company_approved = "company_approved"
    message_received = "message_received"
    system_alert = "system_alert"


class NotificationPriority(str, Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


# ============================================================
# COMMON
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit if limit else 0)


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str
    confirm_password: str

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not is_strong_password(v):
            raise ValueError(PASSWORD_RULES)
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserSummary(BaseModel):
    id: str
    email: str
    name: str
    roles: List[str] = []


class TokenResponse(BaseModel):
    token_type: str = "Bearer"
    access_token: str
    expires_in: int
    user: UserSummary


class TwoFactorChallengeResponse(BaseModel):
    requires_two_factor: bool = True
    challenge_id: str
    expires_in_seconds: int
    message: str
    otp_code: Optional[str] = None


class TwoFactorVerifyRequest(BaseModel):
    challenge_id: str = Field(..., min_length=1, max_length=64)
    code: str = Field(..., pattern=r"^\d{6}$")


class EmailAvailabilityResponse(BaseModel):
    email: str
    available: bool


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ForgotPasswordResponse(BaseModel):
    message: str
    reset_token: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not is_strong_password(v):
            raise ValueError(PASSWORD_RULES)
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class CurrentUserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    is_active: bool
    roles: List[str] = []
    permissions: List[str] = []
    created_at: Optional[datetime] = None


class UserSearchResult(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str


# ============================================================
# COMPANY SCHEMAS
# ============================================================

class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    industry: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    website: Optional[str] = Field(None, max_length=255)
    logo_url: Optional[str] = Field(None, max_length=500)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    address_line1: Optional[str] = Field(None, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Company name is required")
        return v


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    industry: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    website: Optional[str] = Field(None, max_length=255)
    logo_url: Optional[str] = Field(None, max_length=500)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    address_line1: Optional[str] = Field(None, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)


class CompanyResponse(BaseModel):
    id: str
    name: str
    industry: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    status: CompanyStatus
    created_by: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CompanyUserAdd(BaseModel):
    user_id: str


class CompanyUserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    roles: List[str] = []
    added_at: Optional[datetime] = None


class EmployerRegisterRequest(RegisterRequest):
    company: CompanyCreate


# ============================================================
# SYSTEM SETTINGS SCHEMAS
# ============================================================

class ApprovalModeUpdate(BaseModel):
    mode: ApprovalMode


class ApprovalModeResponse(BaseModel):
    mode: ApprovalMode


class SystemSettingsResponse(BaseModel):
    company_approval_mode: ApprovalMode
    system_name: str
    branding_logo_url: Optional[str] = None


class SystemSettingsUpdate(BaseModel):
    company_approval_mode: Optional[ApprovalMode] = None
    system_name: Optional[str] = Field(None, min_length=1, max_length=150)
    branding_logo_url: Optional[str] = Field(None, max_length=500)


# ============================================================
# JOB SCHEMAS
# ============================================================

def _check_salary_range(salary_min, salary_max):
    if salary_min is not None and salary_max is not None and salary_max < salary_min:
        raise ValueError("salary_max must be greater than or equal to salary_min")


class JobCreate(BaseModel):
    company_id: str
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)
    salary_min: Optional[float] = Field(None, ge=0)
    salary_max: Optional[float] = Field(None, ge=0)
    salary_currency: str = Field("USD", min_length=3, max_length=3)
    category: Optional[str] = Field(None, max_length=100)
    experience_level: Optional[ExperienceLevel] = None
    employment_type: Optional[EmploymentType] = None
    remote: bool = False
    requirements: List[str] = []
    responsibilities: List[str] = []
    benefits: List[str] = []
    application_deadline: Optional[date] = None
    status: JobStatus = JobStatus.active

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @model_validator(mode="after")
    def salary_range(self):
        _check_salary_range(self.salary_min, self.salary_max)
        return self


class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)
    salary_min: Optional[float] = Field(None, ge=0)
    salary_max: Optional[float] = Field(None, ge=0)
    salary_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    category: Optional[str] = Field(None, max_length=100)
    experience_level: Optional[ExperienceLevel] = None
    employment_type: Optional[EmploymentType] = None
    remote: Optional[bool] = None
    requirements: Optional[List[str]] = None
    responsibilities: Optional[List[str]] = None
    benefits: Optional[List[str]] = None
    application_deadline: Optional[date] = None
    status: Optional[JobStatus] = None

    @model_validator(mode="after")
    def salary_range(self):
        _check_salary_range(self.salary_min, self.salary_max)
        return self


class JobResponse(BaseModel):
    id: str
    company_id: str
    company_name: Optional[str] = None
    employer_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_currency: str = "USD"
    category: Optional[str] = None
    experience_level: Optional[str] = None
    employment_type: Optional[str] = None
    remote: bool = False
    requirements: List[str] = []
    responsibilities: List[str] = []
    benefits: List[str] = []
    application_deadline: Optional[date] = None
    status: JobStatus
    views: int = 0
    is_featured: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    application_counts: Optional[Dict[str, int]] = None


class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    pagination: Pagination


class JobDeleteResponse(BaseModel):
    message: str
    action: str


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    job_id: str
    cover_letter: Optional[str] = Field(None, max_length=5000)
    resume_url: Optional[str] = Field(None, max_length=500)
    document_id: Optional[str] = None


class ApplicationStatusUpdate(BaseModel):
    status: ReviewStatus
    notes: Optional[str] = Field(None, max_length=2000)


class ApplicationResponse(BaseModel):
    id: str
    job_id: str
    job_title: Optional[str] = None
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    user_id: str
    applicant_name: Optional[str] = None
    applicant_email: Optional[str] = None
    cover_letter: Optional[str] = None
    resume_url: Optional[str] = None
    document_id: Optional[str] = None
    status: ApplicationStatus
    notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]
    pagination: Pagination


# ============================================================
# EMPLOYER SCHEMAS
# ============================================================

class EmployerDashboardStats(BaseModel):
    total_jobs: int = 0
    active_jobs: int = 0
    draft_jobs: int = 0
    closed_jobs: int = 0
    total_views: int = 0
    avg_views_per_job: float = 0
    total_applications: int = 0


class EmployerDashboardJob(BaseModel):
    id: str
    company_id: str
    company_name: Optional[str] = None
    title: str
    status: JobStatus
    views: int = 0
    created_at: Optional[datetime] = None
    application_counts: Dict[str, int]


class EmployerDashboardResponse(BaseModel):
    stats: EmployerDashboardStats
    jobs: List[EmployerDashboardJob]
    recent_applications: List[ApplicationResponse]


class EmployerProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)


class EmployerProfileResponse(BaseModel):
    profile: CurrentUserResponse
    companies: List[CompanyResponse]
    stats: EmployerDashboardStats


# ============================================================
# JOB SEEKER PROFILE SCHEMAS
# ============================================================

def _check_date_range(start_date, end_date):
    if start_date and end_date and end_date < start_date:
        raise ValueError("end_date cannot be before start_date")


class ProfileUpdate(BaseModel):
    professional_summary: Optional[str] = Field(None, max_length=5000)
    field_of_expertise: Optional[str] = Field(None, max_length=150)
    qualification_level: Optional[str] = Field(None, max_length=100)
    years_experience: Optional[int] = Field(None, ge=0, le=60)


class ProfileResponse(BaseModel):
    user_id: str
    professional_summary: Optional[str] = None
    field_of_expertise: Optional[str] = None
    qualification_level: Optional[str] = None
    years_experience: Optional[int] = None
    updated_at: Optional[datetime] = None


class PersonalDetailsUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    middle_name: Optional[str] = Field(None, max_length=100)
    gender: Optional[str] = Field(None, max_length=30)
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = Field(None, max_length=100)
    id_type: Optional[str] = Field(None, max_length=50)
    id_number: Optional[str] = Field(None, max_length=100)
    marital_status: Optional[str] = Field(None, max_length=30)
    disability_status: Optional[str] = Field(None, max_length=100)

    @field_validator("date_of_birth")
    @classmethod
    def not_in_future(cls, v: Optional[date]) -> Optional[date]:
        if v and v > date.today():
            raise ValueError("date_of_birth cannot be in the future")
        return v


class PersonalDetailsResponse(BaseModel):
    user_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    middle_name: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    marital_status: Optional[str] = None
    disability_status: Optional[str] = None
    updated_at: Optional[datetime] = None


class AddressCreate(BaseModel):
    address_line1: str = Field(..., min_length=1, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=30)
    is_primary: bool = False


class AddressUpdate(BaseModel):
    address_line1: Optional[str] = Field(None, min_length=1, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=30)
    is_primary: Optional[bool] = None


class AddressResponse(BaseModel):
    id: str
    user_id: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: Optional[str] = None
    country: str
    postal_code: Optional[str] = None
    is_primary: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EducationCreate(BaseModel):
    institution_name: str = Field(..., min_length=1, max_length=200)
    qualification: str = Field(..., min_length=1, max_length=150)
    field_of_study: Optional[str] = Field(None, max_length=150)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool = False
    grade: Optional[str] = Field(None, max_length=50)
    certificate_url: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def date_range(self):
        _check_date_range(self.start_date, self.end_date)
        return self


class EducationUpdate(BaseModel):
    institution_name: Optional[str] = Field(None, min_length=1, max_length=200)
    qualification: Optional[str] = Field(None, min_length=1, max_length=150)
    field_of_study: Optional[str] = Field(None, max_length=150)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: Optional[bool] = None
    grade: Optional[str] = Field(None, max_length=50)
    certificate_url: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def date_range(self):
        _check_date_range(self.start_date, self.end_date)
        return self


class EducationResponse(BaseModel):
    id: str
    user_id: str
    institution_name: str
    qualification: str
    field_of_study: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool = False
    grade: Optional[str] = None
    certificate_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ExperienceCreate(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=200)
    job_title: str = Field(..., min_length=1, max_length=150)
    employment_type: Optional[str] = Field(None, max_length=30)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool = False
    responsibilities: Optional[str] = None
    salary: Optional[float] = Field(None, ge=0)
    reference_contact: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def date_range(self):
        _check_date_range(self.start_date, self.end_date)
        return self


class ExperienceUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=1, max_length=200)
    job_title: Optional[str] = Field(None, min_length=1, max_length=150)
    employment_type: Optional[str] = Field(None, max_length=30)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: Optional[bool] = None
    responsibilities: Optional[str] = None
    salary: Optional[float] = Field(None, ge=0)
    reference_contact: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def date_range(self):
        _check_date_range(self.start_date, self.end_date)
        return self


class ExperienceResponse(BaseModel):
    id: str
    user_id: str
    company_name: str
    job_title: str
    employment_type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool = False
    responsibilities: Optional[str] = None
    salary: Optional[float] = None
    reference_contact: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReferenceCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=150)
    relationship: Optional[str] = Field(None, max_length=100)
    company: Optional[str] = Field(None, max_length=150)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)


class ReferenceUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=150)
    relationship: Optional[str] = Field(None, max_length=100)
    company: Optional[str] = Field(None, max_length=150)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)


class ReferenceResponse(BaseModel):
    id: str
    user_id: str
    full_name: str
    relationship: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SkillCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    proficiency_level: Optional[ProficiencyLevel] = None
    years_of_experience: Optional[int] = Field(None, ge=0, le=50)
    is_primary: bool = False

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Skill name is required")
        return v


class SkillResponse(BaseModel):
    id: str
    user_id: str
    name: str
    proficiency_level: Optional[ProficiencyLevel] = None
    years_of_experience: Optional[int] = None
    is_primary: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SkillListResponse(BaseModel):
    skills: List[SkillResponse]
    total_count: int
    primary_count: int


class CertificationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    issuing_organization: str = Field(..., min_length=1, max_length=200)
    issue_date: date
    expiration_date: Optional[date] = None
    does_not_expire: bool = False
    credential_id: Optional[str] = Field(None, max_length=100)
    credential_url: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("credential_url")
    @classmethod
    def url_scheme(cls, v: Optional[str]) -> Optional[str]:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Valid URL is required")
        return v

    @model_validator(mode="after")
    def expiration_after_issue(self):
        if self.does_not_expire:
            self.expiration_date = None
        elif self.expiration_date and self.expiration_date <= self.issue_date:
            raise ValueError("expiration_date must be after issue_date")
        return self


class CertificationResponse(BaseModel):
    id: str
    user_id: str
    name: str
    issuing_organization: str
    issue_date: date
    expiration_date: Optional[date] = None
    does_not_expire: bool = False
    credential_id: Optional[str] = None
    credential_url: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CertificationListResponse(BaseModel):
    certifications: List[CertificationResponse]
    total_count: int
    expired_count: int
    expiring_soon_count: int


class FullProfileResponse(BaseModel):
    user: CurrentUserResponse
    profile: Optional[ProfileResponse] = None
    personal_details: Optional[PersonalDetailsResponse] = None
    addresses: List[AddressResponse] = []
    education: List[EducationResponse] = []
    experience: List[ExperienceResponse] = []
    references: List[ReferenceResponse] = []
    skills: List[SkillResponse] = []
    certifications: List[CertificationResponse] = []
    documents: List["DocumentResponse"] = []


# ============================================================
# DOCUMENT SCHEMAS
# ============================================================

class DocumentResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    company_id: Optional[str] = None
    document_type: str
    file_name: str
    original_name: str
    file_url: str
    file_size: int
    mime_type: str
    description: Optional[str] = None
    is_primary: bool = False
    is_public: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DocumentUpdate(BaseModel):
    description: Optional[str] = Field(None, max_length=1000)
    is_public: Optional[bool] = None
    document_type: Optional[DocumentType] = None


FullProfileResponse.model_rebuild()


# ============================================================
# NOTIFICATION SCHEMAS
# ============================================================

class NotificationResponse(BaseModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    action_url: Optional[str] = None
    priority: NotificationPriority
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    pagination: Pagination
    unread_count: int
    unread_by_priority: Dict[str, int]


class UnreadCountResponse(BaseModel):
    unread_count: int
    by_priority: Dict[str, int]


class NotificationPreferences(BaseModel):
    email_notifications: bool = True
    push_notifications: bool = True
    in_app_notifications: bool = True
    application_updates: bool = True
    job_alerts: bool = True
    message_notifications: bool = True
    marketing_emails: bool = False


class NotificationPreferencesUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    in_app_notifications: Optional[bool] = None
    application_updates: Optional[bool] = None
    job_alerts: Optional[bool] = None
    message_notifications: Optional[bool] = None
    marketing_emails: Optional[bool] = None


# ============================================================
# EMAIL TEMPLATE SCHEMAS
# ============================================================

class EmailTemplateResponse(BaseModel):
    key: str
    title: str
    description: str = ""
    subject: str
    body_text: str
    body_html: str
    placeholders: List[str] = []
    is_custom: bool = False
    updated_at: Optional[str] = None


class EmailTemplateCreate(BaseModel):
    key: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=500)
    subject: str = Field(..., min_length=1, max_length=255)
    body_text: str = Field(..., min_length=1)
    placeholders: Optional[List[str]] = None


class EmailTemplateUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=500)
    subject: str = Field(..., min_length=1, max_length=255)
    body_text: str = Field(..., min_length=1)
    placeholders: Optional[List[str]] = None


class EmailPreviewRequest(BaseModel):
    data: Dict[str, Any] = {}


class EmailPreviewResponse(BaseModel):
    subject: str
    body_text: str
    body_html: str


# ============================================================
# ROLE & PERMISSION SCHEMAS
# ============================================================

class RoleCreate(BaseModel):
    name: str = Field(..., pattern=r"^[A-Z][A-Z0-9_]{1,49}$")
    description: Optional[str] = Field(None, max_length=500)


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, pattern=r"^[A-Z][A-Z0-9_]{1,49}$")
    description: Optional[str] = Field(None, max_length=500)


class RoleResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_system: bool = False
    permission_count: int = 0
    user_count: int = 0
    created_at: Optional[datetime] = None


class PermissionCreate(BaseModel):
    name: str = Field(..., pattern=r"^[A-Z][A-Z0-9_]{1,99}$")
    description: Optional[str] = Field(None, max_length=500)
    module_name: str = Field("general", min_length=1, max_length=50)
    action_type: str = Field("MANAGE", min_length=1, max_length=50)


class PermissionResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    module_name: str
    action_type: str


class RolePermissionsUpdate(BaseModel):
    permission_ids: List[str]


class UserRolesUpdate(BaseModel):
    role_ids: List[str]


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class AdminUserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    is_active: bool
    is_blocked: bool
    blocked_reason: Optional[str] = None
    roles: List[str] = []
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AdminUserListResponse(BaseModel):
    users: List[AdminUserResponse]
    pagination: Pagination


class BlockUserRequest(BaseModel):
    is_blocked: bool
    reason: Optional[str] = Field(None, max_length=1000)


class FeatureJobRequest(BaseModel):
    is_featured: bool = True


class AdminLogResponse(BaseModel):
    id: str
    admin_id: Optional[str] = None
    admin_email: Optional[str] = None
    action: str
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None


class AdminLogListResponse(BaseModel):
    logs: List[AdminLogResponse]
    pagination: Pagination


class AuditLogResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    action_type: str
    module_name: Optional[str] = None
    table_name: Optional[str] = None
    record_id: Optional[str] = None
    new_data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogResponse]
    pagination: Pagination
