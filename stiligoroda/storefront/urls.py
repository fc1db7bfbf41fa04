from django.urls import path
from . import views

urlpatterns = [
    # admin panel: catalog exchange
    path('admin-panel/catalog/export/', views.catalog_export, name='catalog_export'),
    path('admin-panel/catalog/import/', views.catalog_import, name='catalog_import'),
    path('admin-panel/catalog/import-csv/', views.products_import_csv, name='products_import_csv'),
    path('admin-panel/catalog/export-csv/', views.products_export_csv, name='products_export_csv'),
    path('admin-panel/catalog/sample-csv/', views.products_sample_csv, name='products_sample_csv'),
    path('admin-panel/catalog/import-wb/', views.import_wildberries, name='import_wildberries'),
]
