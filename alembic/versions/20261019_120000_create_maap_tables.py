"""create_maap_tables

Revision ID: 20261019_120000
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '20261019_120000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

PRIVACY_LEVELS = (
    'observer_only', 'observed_only', 'managers_only',
    'observed_and_managers', 'public_to_company', 'public_to_world',
)


def audit_columns():
    return [
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('modified_by', sa.String(length=255), nullable=True),
        sa.Column('created_on', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('modified_on', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    ]


def check_in_columns():
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('teammate_id', sa.Integer(), sa.ForeignKey('teammates.id'), nullable=False),
        sa.Column('check_in_started_on', sa.Date(), nullable=False),
        sa.Column('employee_private_notes', sa.Text(), nullable=True),
        sa.Column('employee_completed_at', sa.DateTime(), nullable=True),
        sa.Column('manager_private_notes', sa.Text(), nullable=True),
        sa.Column('manager_completed_at', sa.DateTime(), nullable=True),
        sa.Column('manager_completed_by_id', sa.Integer(), sa.ForeignKey('people.id'), nullable=True),
        sa.Column('shared_notes', sa.Text(), nullable=True),
        sa.Column('official_check_in_completed_at', sa.DateTime(), nullable=True),
        sa.Column('finalized_by_id', sa.Integer(), sa.ForeignKey('people.id'), nullable=True),
        sa.Column('maap_snapshot_id', sa.Integer(), sa.ForeignKey('maap_snapshots.id'), nullable=True),
    ]


def versioned_columns():
    return [sa.Column('semantic_version', sa.String(length=20), nullable=False, server_default='0.0.1')]


def upgrade() -> None:
    """Create organizations, people, MAAP records, check-ins, snapshots and observations."""
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.Enum('company', 'department', 'team', name='organization_type'), nullable=False),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=True),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_organizations_parent_id', 'organizations', ['parent_id'])

    op.create_table(
        'people',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('preferred_name', sa.String(length=100), nullable=True),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('idx_people_email', 'people', ['email'])

    op.create_table(
        'teammates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('person_id', sa.Integer(), sa.ForeignKey('people.id'), nullable=False),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('can_manage_employment', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_manage_maap', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('first_employed_at', sa.DateTime(), nullable=True),
        sa.Column('last_terminated_at', sa.DateTime(), nullable=True),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('person_id', 'organization_id', name='uq_teammates_person_organization'),
    )
    op.create_index('idx_teammates_organization_id', 'teammates', ['organization_id'])

    op.create_table(
        'abilities',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        *[sa.Column(f'milestone_{level}_description', sa.Text(), nullable=True) for level in range(1, 6)],
        *versioned_columns(),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_abilities_organization_id', 'abilities', ['organization_id'])

    op.create_table(
        'assignments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('tagline', sa.Text(), nullable=True),
        sa.Column('required_activities', sa.Text(), nullable=True),
        *versioned_columns(),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_assignments_company_id', 'assignments', ['company_id'])

    op.create_table(
        'positions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('position_summary', sa.Text(), nullable=True),
        *versioned_columns(),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_positions_company_id', 'positions', ['company_id'])

    op.create_table(
        'aspirations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_aspirations_organization_id', 'aspirations', ['organization_id'])

    op.create_table(
        'employment_tenures',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('teammate_id', sa.Integer(), sa.ForeignKey('teammates.id'), nullable=False),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('position_id', sa.Integer(), sa.ForeignKey('positions.id'), nullable=True),
        sa.Column('manager_teammate_id', sa.Integer(), sa.ForeignKey('teammates.id'), nullable=True),
        sa.Column('seat_id', sa.Integer(), nullable=True),
        sa.Column('employment_type', sa.String(length=50), nullable=False, server_default='full_time'),
        sa.Column('started_at', sa.Date(), nullable=False),
        sa.Column('ended_at', sa.Date(), nullable=True),
        sa.Column('official_position_rating', sa.Integer(), nullable=True),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_employment_tenures_teammate_id', 'employment_tenures', ['teammate_id'])
    op.create_index('idx_employment_tenures_manager_teammate_id', 'employment_tenures', ['manager_teammate_id'])

    op.create_table(
        'assignment_tenures',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('teammate_id', sa.Integer(), sa.ForeignKey('teammates.id'), nullable=False),
        sa.Column('assignment_id', sa.Integer(), sa.ForeignKey('assignments.id'), nullable=False),
        sa.Column('anticipated_energy_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('started_at', sa.Date(), nullable=False),
        sa.Column('ended_at', sa.Date(), nullable=True),
        sa.Column('official_rating', sa.String(length=30), nullable=True),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'anticipated_energy_percentage >= 0 AND anticipated_energy_percentage <= 100',
            name='ck_assignment_tenures_energy_range',
        ),
    )
    op.create_index('idx_assignment_tenures_teammate_assignment', 'assignment_tenures',
                    ['teammate_id', 'assignment_id'])

    op.create_table(
        'teammate_milestones',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('teammate_id', sa.Integer(), sa.ForeignKey('teammates.id'), nullable=False),
        sa.Column('ability_id', sa.Integer(), sa.ForeignKey('abilities.id'), nullable=False),
        sa.Column('milestone_level', sa.Integer(), nullable=False),
        sa.Column('certified_by_id', sa.Integer(), sa.ForeignKey('people.id'), nullable=True),
        sa.Column('attained_at', sa.DateTime(), nullable=True),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_teammate_milestones_teammate_id', 'teammate_milestones', ['teammate_id'])

    op.create_table(
        'maap_snapshots',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('people.id'), nullable=True),
        sa.Column('created_by_id', sa.Integer(), sa.ForeignKey('people.id'), nullable=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('change_type', sa.String(length=50), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('maap_data', JSON_TYPE, nullable=False),
        sa.Column('form_params', JSON_TYPE, nullable=True),
        sa.Column('request_info', JSON_TYPE, nullable=True),
        sa.Column('manager_request_info', JSON_TYPE, nullable=True),
        sa.Column('effective_date', sa.DateTime(), nullable=True),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_maap_snapshots_employee_id', 'maap_snapshots', ['employee_id'])
    op.create_index('idx_maap_snapshots_company_id', 'maap_snapshots', ['company_id'])
    op.create_index('idx_maap_snapshots_change_type', 'maap_snapshots', ['change_type'])

    op.create_table(
        'assignment_check_ins',
        *check_in_columns(),
        sa.Column('assignment_id', sa.Integer(), sa.ForeignKey('assignments.id'), nullable=False),
        sa.Column('actual_energy_percentage', sa.Integer(), nullable=True),
        sa.Column('employee_rating', sa.String(length=30), nullable=True),
        sa.Column('employee_personal_alignment', sa.String(length=30), nullable=True),
        sa.Column('manager_rating', sa.String(length=30), nullable=True),
        sa.Column('official_rating', sa.String(length=30), nullable=True),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_assignment_check_ins_teammate_assignment', 'assignment_check_ins',
                    ['teammate_id', 'assignment_id'])

    op.create_table(
        'aspiration_check_ins',
        *check_in_columns(),
        sa.Column('aspiration_id', sa.Integer(), sa.ForeignKey('aspirations.id'), nullable=False),
        sa.Column('employee_rating', sa.String(length=30), nullable=True),
        sa.Column('manager_rating', sa.String(length=30), nullable=True),
        sa.Column('official_rating', sa.String(length=30), nullable=True),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_aspiration_check_ins_teammate_aspiration', 'aspiration_check_ins',
                    ['teammate_id', 'aspiration_id'])

    op.create_table(
        'position_check_ins',
        *check_in_columns(),
        sa.Column('employment_tenure_id', sa.Integer(), sa.ForeignKey('employment_tenures.id'), nullable=True),
        sa.Column('employee_rating', sa.Integer(), nullable=True),
        sa.Column('manager_rating', sa.Integer(), nullable=True),
        sa.Column('official_rating', sa.Integer(), nullable=True),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_position_check_ins_teammate_id', 'position_check_ins', ['teammate_id'])

    op.create_table(
        'observations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('observer_id', sa.Integer(), sa.ForeignKey('people.id'), nullable=False),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('story', sa.Text(), nullable=False, server_default=''),
        sa.Column('privacy_level', sa.Enum(*PRIVACY_LEVELS, name='observation_privacy_level'), nullable=False),
        sa.Column('observed_at', sa.DateTime(), nullable=False),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_observations_company_observed_at', 'observations', ['company_id', 'observed_at'])
    op.create_index('idx_observations_observer_id', 'observations', ['observer_id'])

    op.create_table(
        'observees',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('observation_id', sa.Integer(), sa.ForeignKey('observations.id'), nullable=False),
        sa.Column('teammate_id', sa.Integer(), sa.ForeignKey('teammates.id'), nullable=False),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('observation_id', 'teammate_id', name='uq_observees_observation_teammate'),
    )

    op.create_table(
        'observation_ratings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('observation_id', sa.Integer(), sa.ForeignKey('observations.id'), nullable=False),
        sa.Column('rateable_type', sa.Enum('Assignment', 'Ability', 'Aspiration', name='rateable_type'),
                  nullable=False),
        sa.Column('rateable_id', sa.Integer(), nullable=False),
        sa.Column('rating', sa.Enum('strongly_agree', 'agree', 'na', 'disagree', 'strongly_disagree',
                                    name='observation_rating_value'), nullable=False),
        *audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('observation_id', 'rateable_type', 'rateable_id', name='uq_observation_ratings_rateable'),
    )
    op.create_index('idx_observation_ratings_rateable', 'observation_ratings', ['rateable_type', 'rateable_id'])


def downgrade() -> None:
    """Drop all MAAP tables and their enum types."""
    for table in (
        'observation_ratings', 'observees', 'observations',
        'position_check_ins', 'aspiration_check_ins', 'assignment_check_ins',
        'maap_snapshots', 'teammate_milestones', 'assignment_tenures', 'employment_tenures',
        'aspirations', 'positions', 'assignments', 'abilities',
        'teammates', 'people', 'organizations',
    ):
        op.drop_table(table)

    for enum_name in ('observation_rating_value', 'rateable_type', 'observation_privacy_level', 'organization_type'):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
