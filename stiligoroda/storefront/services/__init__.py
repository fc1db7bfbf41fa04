"""
Сервисный слой витрины: доступ к каталогу, импорт с WildBerries, обмен данными.
"""
