# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from enum import StrEnum


class EntityType(StrEnum):
    SERVICE_GROUP = "service_group"
    SERVICE = "service"
    PROJECT = "project"
    CASE_STUDY = "case_study"
    PAGE = "page"
    TESTIMONIAL = "testimonial"


class MetaCollection(StrEnum):
    """Overlay collections, one per entity type."""

    SERVICE_GROUPS = "serviceGroupsMeta"
    SERVICES = "servicesMeta"
    PROJECTS = "projectsMeta"
    CASE_STUDIES = "caseStudiesMeta"
    PAGES = "pagesMeta"
    TESTIMONIALS = "testimonialsMeta"


class MetaKey(StrEnum):
    """Known overlay keys."""

    SEO_TITLE = "seo_title"
    SEO_KEYWORDS = "seo_keywords"
    META_DESCRIPTION = "meta_description"
    META_DESCRIPTION_OVERRIDDEN = "meta_description_overridden"
    CONTENT_BLOCKS = "content_blocks"
    SERVICE_GROUP_ID = "service_group_id"
    PROJECT_ID = "project_id"
    TESTIMONIAL_ENTITY_TYPE = "testimonial_entity_type"
    TESTIMONIAL_ENTITY_ID = "testimonial_entity_id"


class SettingKey(StrEnum):
    LOGO_LIGHT = "logoLight"
    LOGO_DARK = "logoDark"
    FAVICON = "favicon"
    WEBSITE_NAME = "websiteName"
    SITE_TAGLINE = "siteTagline"
    TAX_ID = "taxId"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS_STREET = "addressStreet"
    ADDRESS_CITY = "addressCity"
    ADDRESS_COUNTRY = "addressCountry"
    ADDRESS_ZIP = "addressZip"
    MAINTENANCE_ENABLED = "maintenanceEnabled"
    MAINTENANCE_MESSAGE = "maintenanceMessage"
    MAINTENANCE_CONTACTS = "maintenanceContacts"
